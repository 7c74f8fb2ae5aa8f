# pairpref/training/steps/grid_search_step.py
from __future__ import annotations

from typing import Iterator

from pairpref import logs
from pairpref.pipeline.step import PipelineStep, StepProgress
from pairpref.training.context import AnalysisContext
from pairpref.training.engines.cv_search_engine import GridSearchEngine
from pairpref.training.engines.model_train_engine import TrustPolicy


class GridSearchStep(PipelineStep):
    """
    GridSearchStep（dominant compute cost）

    Contract:
    - consumes ctx.records
    - produces ctx.trials / ctx.best_params
    - yields after every trial
    """

    stage = "grid_search"

    def iter_run(self, ctx: AnalysisContext) -> Iterator[StepProgress]:
        acfg = ctx.cfg.analysis
        engine = GridSearchEngine(
            ctx.cfg.trainer,
            folds=acfg.cv_folds,
            epochs=acfg.cv_epochs,
            trust=TrustPolicy.from_modes(acfg.trusted_modes, lr_boost=acfg.trust_lr_boost),
            max_workers=acfg.max_workers,
        )
        total = len(acfg.learning_rates) * len(acfg.l2_rates)

        ctx.trials = []
        for trial in engine.iter_trials(ctx.records, acfg.learning_rates, acfg.l2_rates):
            ctx.trials.append(trial)
            self.inst.progress.update(self.stage, len(ctx.trials), total, "trials")
            yield (
                f"Grid search: configuration {len(ctx.trials)}/{total} "
                f"(lr={trial.lr}, l2={trial.l2}, cv={trial.score:.3f})",
                len(ctx.trials) / total,
            )

        ctx.best_params = engine.select_best(ctx.trials)
        ctx.metrics["cv_score"] = ctx.best_params.score
        logs.info(
            f"[GridSearch] best lr={ctx.best_params.lr} l2={ctx.best_params.l2} "
            f"cv={ctx.best_params.score:.4f}"
        )
