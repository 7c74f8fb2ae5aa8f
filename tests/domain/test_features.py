# tests/domain/test_features.py
from __future__ import annotations

import math
from dataclasses import fields

import pytest

from pairpref.domain.features import (
    FEATURE_KEYS,
    ChoiceRecord,
    FeatureVector,
    as_number,
    init_weights,
)
from pairpref.domain.validation import split_valid, validate_record
from pairpref.utils.errors import MalformedRecordError


def test_feature_vector_fields_follow_feature_keys():
    assert tuple(f.name for f in fields(FeatureVector)) == FEATURE_KEYS


def test_feature_vector_is_mapping():
    fv = FeatureVector.from_mapping({"waitPenalty": 3, "unknown": 9})

    assert list(fv) == list(FEATURE_KEYS)
    assert len(fv) == 8
    assert fv["waitPenalty"] == 3.0
    assert fv["distanceNorm"] == 0.0
    assert "unknown" not in dict(fv)
    with pytest.raises(KeyError):
        fv["unknown"]


def test_feature_vector_is_frozen():
    fv = FeatureVector()
    with pytest.raises(AttributeError):
        fv.waitPenalty = 1.0
    assert fv.replace(waitPenalty=2.0)["waitPenalty"] == 2.0
    assert fv["waitPenalty"] == 0.0


def test_as_number():
    assert as_number(None) == 0.0
    assert as_number("1.5") == 1.5
    assert math.isnan(as_number("abc"))


def test_init_weights_fresh_each_call():
    w1 = init_weights()
    w1["distanceNorm"] = 1.0
    assert init_weights()["distanceNorm"] == 0.0


def test_to_row(make_record):
    row = make_record({"distanceNorm": 0.2}, {"distanceNorm": 0.4}, "B", "HUSTLE").to_row()
    assert row["A_distanceNorm"] == 0.2
    assert row["B_distanceNorm"] == 0.4
    assert row["choice"] == "B"
    assert row["mode"] == "HUSTLE"


def test_validate_record(make_record):
    ok = make_record({"distanceNorm": 0.2}, {}, "A")
    assert validate_record(ok) is ok

    with pytest.raises(MalformedRecordError):
        validate_record(make_record({}, {}, "a"))
    with pytest.raises(MalformedRecordError):
        validate_record(make_record({"waitPenalty": math.inf}, {}, "A"))


def test_split_valid(make_record):
    records = [
        make_record({}, {}, "A"),
        make_record({"riskLateMin": "late"}, {}, "B"),
        make_record({}, {}, "B"),
    ]
    valid, rejected = split_valid(records)

    assert len(valid) == 2
    assert [i for i, _ in rejected] == [1]
    assert "A_riskLateMin" in rejected[0][1]


def test_choice_record_build_accepts_feature_vectors():
    fv = FeatureVector(distanceNorm=1.0)
    r = ChoiceRecord.build(fv, {"distanceNorm": 2.0}, "A")
    assert r.feat_a is fv
    assert isinstance(r.feat_b, FeatureVector)
