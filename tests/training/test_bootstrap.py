# tests/training/test_bootstrap.py
from __future__ import annotations

import random

import pytest

from pairpref.training.engines.bootstrap_engine import (
    BootstrapEngine,
    ensemble_disagreement,
    mean_weights,
    median_weights,
    resample,
    train_ensemble,
    weight_stats,
)
from pairpref.training.engines.model_train_engine import TrustPolicy
from pairpref.training.engines.train_result import BestParams, EnsembleModel

PARAMS = BestParams(lr=0.05, l2=0.001, score=1.0)


def test_seeded_runs_are_identical(synthetic_records):
    e1 = train_ensemble(synthetic_records, PARAMS, 3, epochs=2, rng=random.Random(11))
    e2 = train_ensemble(synthetic_records, PARAMS, 3, epochs=2, rng=random.Random(11))

    s1, s2 = weight_stats(e1), weight_stats(e2)
    for f in s1:
        assert s1[f].mean == s2[f].mean
        assert s1[f].std == s2[f].std


def test_ensemble_members_are_frozen(distance_records):
    ensemble = train_ensemble(distance_records, PARAMS, 2, epochs=1, rng=random.Random(0))

    assert [m.round_index for m in ensemble] == [0, 1]
    with pytest.raises(TypeError):
        ensemble[0].weights["distanceNorm"] = 1.0


def test_resample_adds_trusted_copies(make_record):
    trusted = make_record({"distanceNorm": 0.0}, {"distanceNorm": 1.0}, "A", "PERFECTIONING")
    plain = make_record({"distanceNorm": 1.0}, {"distanceNorm": 0.0}, "B", "LOCKER")
    policy = TrustPolicy.from_modes(["PERFECTIONING"], multiplier=3)

    sample = resample([trusted, plain], random.Random(3), policy)

    assert len(sample) == 2 + 2
    assert sample[2:] == [trusted, trusted]


def test_resample_empty():
    assert resample([], random.Random(0)) == []


def test_weight_stats_values():
    ensemble = [
        EnsembleModel.freeze({"distanceNorm": -1.0}),
        EnsembleModel.freeze({"distanceNorm": -3.0}),
    ]
    s = weight_stats(ensemble)["distanceNorm"]

    assert s.mean == -2.0
    assert s.std == 1.0
    assert s.median == -2.0
    assert (s.min, s.max) == (-3.0, -1.0)
    assert s.stability == pytest.approx(1.0 - 1.0 / 2.5)


def test_weight_stats_empty_is_zero():
    s = weight_stats([])
    assert all(v.mean == 0.0 and v.std == 0.0 for v in s.values())
    assert mean_weights([])["distanceNorm"] == 0.0


def test_disagreement_split_and_unanimous():
    ensemble = [
        EnsembleModel.freeze({"distanceNorm": -1.0}),
        EnsembleModel.freeze({"distanceNorm": 1.0}),
    ]
    fa, fb = {"distanceNorm": 0.0}, {"distanceNorm": 1.0}

    assert ensemble_disagreement(ensemble, fa, fb) == 1.0
    assert ensemble_disagreement(ensemble[:1], fa, fb) == 0.0
    assert ensemble_disagreement([], fa, fb) == 0.0


def test_parallel_matches_sequential(synthetic_records):
    seq = BootstrapEngine(epochs=1, max_workers=1).train_ensemble(
        synthetic_records, PARAMS, 2, random.Random(5)
    )
    par = BootstrapEngine(epochs=1, max_workers=2).train_ensemble(
        synthetic_records, PARAMS, 2, random.Random(5)
    )
    assert [dict(m.weights) for m in seq] == [dict(m.weights) for m in par]


def test_median_weights_resist_outlier_round():
    ensemble = [EnsembleModel.freeze({"waitPenalty": w}) for w in (-1.0, -1.2, 9.0)]

    stats = weight_stats(ensemble)

    assert median_weights(stats)["waitPenalty"] == pytest.approx(-1.0)
    assert mean_weights(ensemble)["waitPenalty"] == pytest.approx(6.8 / 3)
