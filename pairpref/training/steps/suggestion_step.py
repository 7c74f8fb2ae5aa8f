# pairpref/training/steps/suggestion_step.py
from __future__ import annotations

from typing import Iterator

from pairpref import logs
from pairpref.pipeline.step import PipelineStep, StepProgress
from pairpref.training.context import AnalysisContext
from pairpref.training.engines.query_engine import QueryEngine


class SuggestionStep(PipelineStep):
    """
    Active-learning next queries.

    Contract:
    - consumes ctx.ensemble / ctx.stats / ctx.rng
    - produces ctx.queries
    """

    stage = "suggestions"

    def iter_run(self, ctx: AnalysisContext) -> Iterator[StepProgress]:
        acfg = ctx.cfg.analysis
        yield "Generating training suggestions...", 0.0

        engine = QueryEngine(pool_size=acfg.query_pool_size)
        ctx.queries = engine.rank_queries(ctx.ensemble, ctx.stats, acfg.query_count, ctx.rng)

        for q in ctx.queries:
            logs.info(f"[Suggestions] {q.describe()}")
        yield f"{len(ctx.queries)} suggestions ready", 1.0
