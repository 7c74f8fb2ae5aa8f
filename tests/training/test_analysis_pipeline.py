# tests/training/test_analysis_pipeline.py
from __future__ import annotations

import asyncio
import math
from typing import Iterator

import pytest

from pairpref.domain.features import FEATURE_KEYS
from pairpref.pipeline.scheduler import CancelToken, ProgressEvent
from pairpref.pipeline.step import PipelineStep
from pairpref.training.engines.export_engine import to_production_config
from pairpref.training.pipeline import AnalysisPipeline
from pairpref.training.steps.feature_stats_step import FeatureStatsStep
from pairpref.utils.errors import (
    AnalysisCancelled,
    AnalysisPhaseError,
    InsufficientDataError,
)
from pairpref.workflows.offline_analysis import build_offline_analysis


class BoomStep(PipelineStep):
    stage = "boom"

    def iter_run(self, ctx) -> Iterator:
        yield "about to fail", 0.5
        raise ValueError("boom")


def test_full_run_produces_result(small_cfg, synthetic_records):
    result = build_offline_analysis(small_cfg).run(synthetic_records, run_id="t1")

    assert result.run_id == "t1"
    assert set(result.weights) == set(FEATURE_KEYS)
    assert (result.best_params["lr"], result.best_params["l2"]) in [(0.05, 0.001), (0.1, 0.001)]
    assert len(result.suggestions) == 3
    assert set(result.production_config) == {
        "totalCoveredMin", "waitPenalty", "switchBonus",
        "stabilityBonus", "productiveLossMin", "preferredRoomBonus",
    }
    assert len(result.diagnostics["coverage"]) == 2
    assert result.meta["record_count"] == len(synthetic_records)
    assert result.meta["trusted_count"] == 6


def test_progress_is_monotone_and_reaches_one(small_cfg, synthetic_records):
    seen = []
    pipeline = build_offline_analysis(small_cfg, observer=lambda msg, frac: seen.append(frac))

    pipeline.run(synthetic_records)

    assert seen
    assert all(0.0 <= f <= 1.0 for f in seen)
    assert seen == sorted(seen)
    assert seen[-1] == 1.0


def test_iter_run_yields_events_for_every_phase(small_cfg, synthetic_records):
    pipeline = build_offline_analysis(small_cfg)
    ctx = pipeline.prepare(synthetic_records)

    events = list(pipeline.iter_run(ctx))

    assert all(isinstance(e, ProgressEvent) for e in events)
    phases = list(dict.fromkeys(e.phase for e in events))
    assert phases == ["stats", "grid_search", "ensemble", "diagnostics", "suggestions", "export"]
    # one event per trial
    assert sum(1 for e in events if e.phase == "grid_search") == 2
    assert ctx.result is not None


def test_same_seed_same_result(small_cfg, synthetic_records):
    r1 = build_offline_analysis(small_cfg).run(synthetic_records)
    r2 = build_offline_analysis(small_cfg).run(synthetic_records)

    assert r1.weights == r2.weights
    assert r1.suggestions == r2.suggestions


def test_insufficient_data_refuses_to_start(small_cfg, distance_records):
    called = []
    pipeline = build_offline_analysis(small_cfg, observer=lambda m, f: called.append(f))

    with pytest.raises(InsufficientDataError) as exc:
        pipeline.run(distance_records[:4])

    assert exc.value.available == 4
    assert exc.value.required == 5
    assert called == []


def test_malformed_records_are_skipped(small_cfg, synthetic_records, make_record):
    bad = [
        make_record({"distanceNorm": math.nan}, {}, "A"),
        make_record({}, {}, "C"),
    ]
    pipeline = build_offline_analysis(small_cfg)
    ctx = pipeline.prepare(bad + synthetic_records)

    assert len(ctx.records) == len(synthetic_records)
    assert [i for i, _ in ctx.rejected] == [0, 1]


def test_malformed_records_count_against_minimum(small_cfg, distance_records, make_record):
    records = distance_records[:4] + [make_record({}, {}, "X")]
    with pytest.raises(InsufficientDataError):
        build_offline_analysis(small_cfg).prepare(records)


def test_cancel_stops_at_next_yield(small_cfg, synthetic_records):
    token = CancelToken()
    seen = []

    def observer(msg, frac):
        seen.append(frac)
        if frac > 0.2:
            token.cancel("user closed the dialog")

    pipeline = build_offline_analysis(small_cfg, observer=observer, cancel=token)

    with pytest.raises(AnalysisCancelled):
        pipeline.run(synthetic_records)

    assert max(seen) < 1.0


def test_phase_error_is_wrapped(small_cfg, synthetic_records):
    pipeline = AnalysisPipeline(steps=[FeatureStatsStep(), BoomStep()], cfg=small_cfg)

    with pytest.raises(AnalysisPhaseError) as exc:
        pipeline.run(synthetic_records)

    assert exc.value.phase == "boom"
    assert exc.value.phase_index == 1
    assert isinstance(exc.value.__cause__, ValueError)


def test_run_async(small_cfg, synthetic_records):
    result = asyncio.run(build_offline_analysis(small_cfg).run_async(synthetic_records))
    assert set(result.weights) == set(FEATURE_KEYS)


def test_timeline_records_each_phase(small_cfg, synthetic_records):
    pipeline = build_offline_analysis(small_cfg)
    pipeline.run(synthetic_records)

    assert list(pipeline.inst.timeline) == [
        "stats", "grid_search", "ensemble", "diagnostics", "suggestions", "export",
    ]


def test_run_metrics_published_to_instrumentation(small_cfg, synthetic_records):
    pipeline = build_offline_analysis(small_cfg)
    pipeline.run(synthetic_records)

    snap = pipeline.inst.metrics.snapshot()
    assert snap["record_count"] == len(synthetic_records)
    assert "cv_score" in snap


def test_production_config_is_built_from_ensemble_medians(small_cfg, synthetic_records):
    result = build_offline_analysis(small_cfg).run(synthetic_records)

    medians = {f: row["median"] for f, row in result.weights.items()}
    assert result.production_config == to_production_config(medians, small_cfg.export)


def test_permutation_importance_uses_reference_model(small_cfg, synthetic_records):
    result = build_offline_analysis(small_cfg).run(synthetic_records)

    assert result.diagnostics["baseline_accuracy"] == pytest.approx(result.reference_accuracy)
