# tests/training/test_diagnostics.py
from __future__ import annotations

import random

import pytest

from pairpref.domain.features import FEATURE_KEYS
from pairpref.training.engines.diagnostics_engine import (
    analyze_uncertainty,
    correlation_matrix,
    coverage_grid,
    feature_stats,
    iter_inconsistencies,
    margin_bucket,
    pearson,
    permutation_importance,
    permute_feature,
    redundant_pairs,
    tipping_points,
)
from pairpref.training.engines.model_train_engine import AdamPairwiseTrainEngine
from pairpref.training.engines.train_result import BestParams, EnsembleModel


# ------------------------------------------------------------
# feature stats
# ------------------------------------------------------------
def test_feature_stats_zero_span_guarded(distance_records):
    stats = feature_stats(distance_records)
    assert stats["distanceNorm"].span == 1.0
    assert stats["waitPenalty"].span == 1.0
    assert stats["distanceNorm"].mean == 0.5


def test_feature_stats_empty():
    stats = feature_stats([])
    assert set(stats) == set(FEATURE_KEYS)
    assert all(s.span == 1.0 for s in stats.values())


# ------------------------------------------------------------
# correlation
# ------------------------------------------------------------
def test_pearson_basic():
    assert pearson([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)
    assert pearson([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0)
    assert pearson([1, 1, 1], [1, 2, 3]) == 0.0
    assert pearson([], []) == 0.0


def test_redundant_pair_flagged_once(make_record):
    records = [
        make_record({"waitPenalty": float(i), "riskLateMin": 2.0 * i}, {}, "A")
        for i in range(6)
    ]
    matrix = correlation_matrix(records)
    pairs = redundant_pairs(matrix, 0.85)

    assert matrix["waitPenalty"]["riskLateMin"] == pytest.approx(1.0)
    assert matrix["riskLateMin"]["waitPenalty"] == matrix["waitPenalty"]["riskLateMin"]
    assert [(p.first, p.second) for p in pairs] == [("waitPenalty", "riskLateMin")]


# ------------------------------------------------------------
# permutation importance
# ------------------------------------------------------------
def test_permute_feature_keeps_other_columns(synthetic_records):
    shuffled = permute_feature(synthetic_records, "waitPenalty", random.Random(1))

    assert sorted(r.feat_a["waitPenalty"] for r in shuffled) == sorted(
        r.feat_a["waitPenalty"] for r in synthetic_records
    )
    for orig, new in zip(synthetic_records, shuffled):
        assert new.feat_a["distanceNorm"] == orig.feat_a["distanceNorm"]
        assert new.choice == orig.choice


def test_permutation_importance_unused_feature_is_zero(synthetic_records):
    weights = {"distanceNorm": -2.0, "waitPenalty": -0.05}
    baseline, importance = permutation_importance(weights, synthetic_records, random.Random(3))

    assert baseline == 1.0
    assert importance["totalCoveredMin"] == 0.0
    assert importance["waitPenalty"] >= 0.0


# ------------------------------------------------------------
# tipping points
# ------------------------------------------------------------
def test_tipping_points():
    tp = tipping_points({"distanceNorm": -0.5, "waitPenalty": 0.0005}, margin=2.0)

    assert tp["distanceNorm"].delta_needed == pytest.approx(4.0)
    assert tp["waitPenalty"].irrelevant
    assert tp["switchPenalty"].irrelevant
    assert tp["distanceNorm"].describe() == "±4.00"


# ------------------------------------------------------------
# coverage
# ------------------------------------------------------------
def test_coverage_counts_every_point(synthetic_records):
    grid = coverage_grid(synthetic_records, "waitPenalty", "distanceNorm", cells=3)

    assert len(grid.cells) == 9
    assert grid.total == grid.points_in_box == 2 * len(synthetic_records)


def test_coverage_external_box_excludes_outside_points(make_record):
    from pairpref.training.engines.diagnostics_engine import FeatureStats

    records = [
        make_record({"waitPenalty": 0.0, "distanceNorm": 0.0}, {"waitPenalty": 10.0, "distanceNorm": 1.0}),
        make_record({"waitPenalty": 99.0, "distanceNorm": 0.5}, {"waitPenalty": 5.0, "distanceNorm": 0.5}),
    ]
    stats = feature_stats(records)
    stats["waitPenalty"] = FeatureStats(min=0.0, max=10.0, span=10.0, mean=5.0)

    grid = coverage_grid(records, "waitPenalty", "distanceNorm", cells=3, stats=stats)

    assert grid.points_in_box == 3
    assert grid.total == 3


def test_coverage_blind_spots(distance_records):
    grid = coverage_grid(distance_records, "distanceNorm", "waitPenalty", cells=3)

    # distanceNorm ∈ {0, 1}, waitPenalty == 0 → 只有两个角落格子有点
    occupied = [(c.ix, c.iy) for c in grid.cells if c.count]
    assert occupied == [(0, 0), (2, 0)]
    assert len(grid.blind_spots()) == 7
    assert "distanceNorm_vs_waitPenalty" in grid.describe_blind_spot(grid.blind_spots()[0])


# ------------------------------------------------------------
# uncertainty
# ------------------------------------------------------------
def test_margin_bucket():
    assert [margin_bucket(m) for m in (0.05, 0.3, 0.9, 1.5, 5.0)] == [0, 1, 2, 3, 4]


def test_uncertainty_report(distance_records, make_record):
    records = distance_records[:3] + [make_record({}, {}, "A")]
    ensemble = [
        EnsembleModel.freeze({"distanceNorm": -1.0}),
        EnsembleModel.freeze({"distanceNorm": 1.0}),
    ]
    report = analyze_uncertainty(records, ensemble, {"distanceNorm": -1.0}, critical_limit=2)

    assert report.margin_histogram == [1, 0, 0, 3, 0]
    assert report.disagreement_count == 3
    assert report.dataset_health == pytest.approx(0.25)
    assert report.uncertainty_ratio == 1.0
    assert len(report.critical_samples) == 2
    assert report.critical_samples[0].reason == "high disagreement"


def test_uncertainty_counts_and_critical_use_separate_thresholds(make_record):
    # 8 of 10 models vote A → disagreement 0.4: counted, not critical
    ensemble = [EnsembleModel.freeze({"distanceNorm": -1.0})] * 8 + [
        EnsembleModel.freeze({"distanceNorm": 1.0})
    ] * 2
    records = [make_record({"distanceNorm": 0.0}, {"distanceNorm": 1.0}, "A")]

    report = analyze_uncertainty(records, ensemble, {"distanceNorm": -1.0})

    assert report.disagreement_count == 1
    assert report.dataset_health == 0.0
    assert report.critical_samples == []

    strict = analyze_uncertainty(records, ensemble, {"distanceNorm": -1.0}, critical_disagreement=0.3)
    assert strict.critical_samples[0].reason == "high disagreement"


# ------------------------------------------------------------
# leave-one-out
# ------------------------------------------------------------
def test_inconsistency_found_for_contradicting_record(distance_records, make_record):
    odd = make_record({"distanceNorm": 0.0}, {"distanceNorm": 1.0}, "B")
    records = [odd] + distance_records

    found = list(
        iter_inconsistencies(
            records,
            BestParams(lr=0.05, l2=0.001, score=1.0),
            epochs=3,
            limit=3,
            engine=AdamPairwiseTrainEngine(),
        )
    )

    assert [i for i, _ in found] == [0, 1, 2]
    assert found[0][1] is not None
    assert found[0][1].prediction == "A"
    assert found[1][1] is None
