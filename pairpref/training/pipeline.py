# pairpref/training/pipeline.py
from __future__ import annotations

import random
import uuid
from typing import Iterable, Iterator, List, Optional

from pairpref import logs
from pairpref.config.app_config import AppConfig
from pairpref.domain.features import ChoiceRecord
from pairpref.domain.validation import split_valid
from pairpref.observability.instrumentation import Instrumentation, NoOpInstrumentation
from pairpref.observability.progress import ProgressObserver, overall_fraction
from pairpref.pipeline.scheduler import CancelToken, ProgressEvent, astep
from pairpref.pipeline.step import PipelineStep
from pairpref.training.context import AnalysisContext
from pairpref.training.result import AnalysisResult
from pairpref.utils.errors import (
    AnalysisCancelled,
    AnalysisPhaseError,
    InsufficientDataError,
)


class AnalysisPipeline:
    """
    AnalysisPipeline（FINAL / FROZEN）

    Semantics:
    - Pipeline owns phase order（固定顺序，无分支，无重试）
    - Steps execute semantics
    - 每个 step yield 之后：observer → ProgressEvent → 取消检查
    - run()       = 同步 drain
    - run_async() = 每个 event 之后把控制权交还 event loop
    """

    def __init__(
            self,
            steps: List[PipelineStep],
            cfg: AppConfig,
            *,
            inst: Instrumentation | NoOpInstrumentation | None = None,
            observer: Optional[ProgressObserver] = None,
            cancel: Optional[CancelToken] = None,
    ):
        self.steps = steps
        self.cfg = cfg
        self.inst = inst if inst is not None else NoOpInstrumentation(observer)
        if observer is not None:
            self.inst.progress.observer = observer
        self.cancel = cancel if cancel is not None else CancelToken()

    @property
    def total_phases(self) -> int:
        return len(self.steps)

    # --------------------------------------------------
    # Preflight
    # --------------------------------------------------
    def prepare(self, records: Iterable[ChoiceRecord], run_id: str | None = None) -> AnalysisContext:
        """
        Validate records and build the context. Raises InsufficientDataError
        before any phase runs.
        """
        valid, rejected = split_valid(records)
        for idx, reason in rejected:
            logs.warning(f"[AnalysisPipeline] skip record #{idx}: {reason}")

        required = self.cfg.analysis.min_records
        if len(valid) < required:
            raise InsufficientDataError(len(valid), required)

        return AnalysisContext(
            run_id=run_id or uuid.uuid4().hex[:12],
            cfg=self.cfg,
            rng=random.Random(self.cfg.analysis.seed),
            records=valid,
            rejected=rejected,
        )

    # --------------------------------------------------
    # Phase stepper
    # --------------------------------------------------
    def iter_run(self, ctx: AnalysisContext) -> Iterator[ProgressEvent]:
        logs.info(
            f"[AnalysisPipeline] START run_id={ctx.run_id} "
            f"records={len(ctx.records)} phases={self.total_phases}"
        )
        total = self.total_phases

        for idx, step in enumerate(self.steps):
            self.cancel.check()
            phase = step.stage or step.step_name

            try:
                with self.inst.timer(phase):
                    for message, frac in step.iter_run(ctx):
                        event = ProgressEvent(
                            phase=phase,
                            phase_index=idx,
                            message=message,
                            phase_fraction=frac,
                            fraction=overall_fraction(idx, frac, total),
                        )
                        self.inst.progress.report(message, event.fraction)
                        yield event
                        self.cancel.check()
            except AnalysisCancelled:
                logs.warning(f"[AnalysisPipeline] cancelled during phase={phase}")
                raise
            except Exception as e:
                logs.error(f"[AnalysisPipeline] phase={phase} failed: {e}")
                raise AnalysisPhaseError(phase, idx, e) from e

        ctx.metrics["phase_seconds"] = dict(self.inst.timeline)
        self.inst.metrics.record_many(
            {k: v for k, v in ctx.metrics.items() if k != "phase_seconds"}
        )
        self.inst.progress.report("Analysis complete", 1.0)
        self.inst.generate_timeline_report(ctx.run_id)
        logs.info(f"[AnalysisPipeline] DONE run_id={ctx.run_id}")

    # --------------------------------------------------
    # Drivers
    # --------------------------------------------------
    def run(self, records: Iterable[ChoiceRecord], run_id: str | None = None) -> AnalysisResult:
        ctx = self.prepare(records, run_id)
        for _ in self.iter_run(ctx):
            pass
        return self._result(ctx)

    async def run_async(
            self,
            records: Iterable[ChoiceRecord],
            run_id: str | None = None,
    ) -> AnalysisResult:
        ctx = self.prepare(records, run_id)
        async for _ in astep(self.iter_run(ctx)):
            pass
        return self._result(ctx)

    @staticmethod
    def _result(ctx: AnalysisContext) -> AnalysisResult:
        if ctx.result is None:
            ctx.result = AnalysisResult.from_context(ctx)
        return ctx.result
