# pairpref/training/steps/diagnostics_step.py
from __future__ import annotations

from typing import Iterator

from pairpref import logs
from pairpref.pipeline.step import PipelineStep, StepProgress
from pairpref.training.context import AnalysisContext, DiagnosticsReport
from pairpref.training.engines.diagnostics_engine import (
    analyze_uncertainty,
    correlation_matrix,
    coverage_grid,
    iter_inconsistencies,
    permutation_importance,
    redundant_pairs,
    tipping_points,
)
from pairpref.training.engines.model_train_engine import (
    AdamPairwiseTrainEngine,
    TrustPolicy,
)


class DiagnosticsStep(PipelineStep):
    """
    DiagnosticsStep

    Contract:
    - consumes ctx.records / ctx.stats / ctx.ensemble / ctx.representative / ctx.reference
    - produces ctx.diagnostics
    - leave-one-out scan yields after every retrained record
    """

    stage = "diagnostics"

    def iter_run(self, ctx: AnalysisContext) -> Iterator[StepProgress]:
        acfg = ctx.cfg.analysis
        report = DiagnosticsReport()
        ctx.diagnostics = report

        # 1) redundancy
        report.correlations = correlation_matrix(ctx.records)
        report.redundant = redundant_pairs(report.correlations, acfg.redundancy_threshold)
        yield "Correlation of feature deltas computed", 0.05

        # 2) permutation importance on the full-data reference model
        reference = ctx.reference.weights if ctx.reference is not None else ctx.representative
        report.baseline_accuracy, report.importance = permutation_importance(
            reference, ctx.records, ctx.rng
        )
        yield "Permutation importance computed", 0.1

        # 3) tipping points (ensemble mean)
        report.tipping = tipping_points(
            ctx.representative,
            margin=acfg.tipping_margin,
            irrelevant_below=acfg.irrelevant_weight,
        )

        # 4) coverage
        report.coverage = [
            coverage_grid(ctx.records, fx, fy, acfg.coverage_cells, ctx.stats)
            for fx, fy in acfg.coverage_pairs
        ]
        yield "Coverage grid computed", 0.15

        # 5) uncertainty
        report.uncertainty = analyze_uncertainty(
            ctx.records,
            ctx.ensemble,
            reference,
            margin_threshold=acfg.margin_threshold,
            disagreement_threshold=acfg.disagreement_threshold,
            critical_disagreement=acfg.critical_disagreement,
            critical_limit=acfg.critical_limit,
        )
        yield "Uncertainty analysed", 0.2

        # 6) leave-one-out inconsistencies
        best = ctx.best_params
        limit = min(acfg.loo_limit, len(ctx.records))
        if best is not None and limit > 0:
            engine = AdamPairwiseTrainEngine(
                ctx.cfg.trainer,
                TrustPolicy.from_modes(acfg.trusted_modes, lr_boost=acfg.trust_lr_boost),
            )
            for i, found in iter_inconsistencies(
                ctx.records, best, epochs=acfg.loo_epochs, limit=limit, engine=engine
            ):
                if found is not None:
                    report.inconsistencies.append(found)
                yield (
                    f"Searching inconsistencies {i + 1}/{limit}...",
                    0.2 + 0.8 * (i + 1) / limit,
                )

        logs.info(
            f"[Diagnostics] redundant={len(report.redundant)} "
            f"blind_spots={sum(len(g.blind_spots()) for g in report.coverage)} "
            f"inconsistencies={len(report.inconsistencies)}"
        )
