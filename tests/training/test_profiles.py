# tests/training/test_profiles.py
from __future__ import annotations

import pytest

from pairpref.config.training_config import ProfileConfig
from pairpref.training.engines.profile_engine import (
    Profile,
    ProfileEngine,
    group_stats,
    spread,
)
from pairpref.utils.errors import InsufficientDataError


def _profile(name: str, weights: dict, consistency: float = 1.0) -> Profile:
    return Profile(name=name, user_id=None, record_count=10, weights=weights, consistency=consistency)


def test_profile_is_trained_on_its_own_records(distance_records):
    engine = ProfileEngine(ProfileConfig(epochs=5))

    p = engine.profile("alice", distance_records, user_id="u1")

    assert p.label == "u1"
    assert p.record_count == 10
    assert p.weights["distanceNorm"] < 0
    assert p.consistency == 1.0


def test_profile_without_valid_records_is_skipped(make_record):
    engine = ProfileEngine(ProfileConfig(epochs=1))

    assert engine.profile("broken", [make_record({}, {}, "x")]) is None


def test_spread_is_population_std():
    s = spread([-1.0, -3.0])
    assert s.mean == pytest.approx(-2.0)
    assert s.std == pytest.approx(1.0)
    assert spread([]) == spread([0.0])


def test_group_stats_finds_disagreement_and_consensus():
    report = group_stats([
        _profile("a", {"distanceNorm": -1.0, "waitPenalty": 0.5}),
        _profile("b", {"distanceNorm": -3.0, "waitPenalty": 0.5}),
    ])

    assert report.features["distanceNorm"].std == pytest.approx(1.0)
    assert report.features["waitPenalty"].std == 0.0
    assert report.most_uncertain == "distanceNorm"
    # ties on std keep feature order → the last zero-std feature
    assert report.most_consistent == "totalCoveredMin"
    assert report.by_strength()[:2] == ["distanceNorm", "waitPenalty"]
    assert "walking distance" in report.recommendation()


def test_group_stats_needs_a_profile():
    with pytest.raises(InsufficientDataError):
        group_stats([])


def test_compare_per_file_profiles(distance_records, make_record):
    engine = ProfileEngine(ProfileConfig(epochs=5))
    near = engine.profile("near", distance_records)
    far = engine.profile(
        "far", [make_record({"distanceNorm": 0.0}, {"distanceNorm": 1.0}, "B") for _ in range(10)]
    )

    report = engine.compare([near, far])

    assert report.most_uncertain == "distanceNorm"
    assert report.features["distanceNorm"].mean == pytest.approx(0.0, abs=1e-9)
    assert [p["name"] for p in report.to_dict()["profiles"]] == ["near", "far"]
