# pairpref/training/steps/export_step.py
from __future__ import annotations

from typing import Iterator

from pairpref import logs
from pairpref.pipeline.step import PipelineStep, StepProgress
from pairpref.training.context import AnalysisContext
from pairpref.training.engines.bootstrap_engine import median_weights
from pairpref.training.engines.export_engine import to_production_config
from pairpref.training.result import AnalysisResult


class ExportStep(PipelineStep):
    """
    ExportStep（FINAL）

    Semantics:
    - 把 ensemble 每个 feature 的中位数权重映射为外部 scorer 配置（policy）
    - 组装 AnalysisResult
    - DOES NOT write files（写文件是 io.report_writer 的职责）
    """

    stage = "export"

    def iter_run(self, ctx: AnalysisContext) -> Iterator[StepProgress]:
        yield "Mapping weights to production config...", 0.0

        ctx.production_config = to_production_config(
            median_weights(ctx.weight_stats), ctx.cfg.export
        )

        ctx.result = AnalysisResult.from_context(ctx)
        logs.info(f"[Export] production_config={ctx.production_config}")
        yield "Report finalised", 1.0
