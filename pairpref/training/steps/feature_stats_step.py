# pairpref/training/steps/feature_stats_step.py
from __future__ import annotations

from typing import Iterator

from pairpref import logs
from pairpref.pipeline.step import PipelineStep, StepProgress
from pairpref.training.context import AnalysisContext
from pairpref.training.engines.diagnostics_engine import feature_stats


class FeatureStatsStep(PipelineStep):
    """
    FeatureStatsStep

    Contract:
    - consumes ctx.records (already validated)
    - produces ctx.stats
    """

    stage = "stats"

    def iter_run(self, ctx: AnalysisContext) -> Iterator[StepProgress]:
        yield f"Analysing {len(ctx.records)} decisions...", 0.0

        ctx.stats = feature_stats(ctx.records)

        trusted = set(ctx.cfg.analysis.trusted_modes)
        ctx.metrics["record_count"] = len(ctx.records)
        ctx.metrics["rejected_count"] = len(ctx.rejected)
        ctx.metrics["trusted_count"] = sum(1 for r in ctx.records if r.mode in trusted)

        logs.info(
            f"[FeatureStats] records={len(ctx.records)} "
            f"trusted={ctx.metrics['trusted_count']} rejected={len(ctx.rejected)}"
        )
        yield "Feature statistics ready", 1.0
