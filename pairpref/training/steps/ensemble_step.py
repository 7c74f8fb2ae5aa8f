# pairpref/training/steps/ensemble_step.py
from __future__ import annotations

from typing import Iterator

from pairpref import logs
from pairpref.domain.features import init_weights
from pairpref.pipeline.step import PipelineStep, StepProgress
from pairpref.training.context import AnalysisContext
from pairpref.training.engines.bootstrap_engine import (
    BootstrapEngine,
    mean_weights,
    weight_stats,
)
from pairpref.training.engines.model_train_engine import (
    AdamPairwiseTrainEngine,
    TrustPolicy,
)
from pairpref.training.engines.online_trainer import OptimizerState
from pairpref.training.engines.scoring import accuracy
from pairpref.training.engines.train_result import ModelState

# share of the phase spent on the full-data reference model
REFERENCE_SHARE = 0.2


class EnsembleStep(PipelineStep):
    """
    EnsembleStep

    Contract:
    - consumes ctx.records / ctx.best_params / ctx.rng
    - produces ctx.reference (full-data model), ctx.ensemble,
      ctx.weight_stats, ctx.representative
    """

    stage = "ensemble"

    def iter_run(self, ctx: AnalysisContext) -> Iterator[StepProgress]:
        acfg = ctx.cfg.analysis
        params = ctx.best_params
        if params is None:
            raise RuntimeError("EnsembleStep requires best_params from grid search")

        trust = TrustPolicy.from_modes(
            acfg.trusted_modes,
            multiplier=acfg.trust_multiplier,
            lr_boost=acfg.trust_lr_boost,
        )

        # ------------------------------
        # Reference model (all records)
        # ------------------------------
        trainer = AdamPairwiseTrainEngine(ctx.cfg.trainer, trust)
        state = ModelState(weights=init_weights(), opt=OptimizerState.fresh())
        for frac in trainer.iter_train(
            ctx.records,
            lr=params.lr,
            l2=params.l2,
            epochs=acfg.final_epochs,
            state=state,
            batch=acfg.epoch_batch,
        ):
            yield f"Reference training ({acfg.final_epochs} epochs)... {frac:.0%}", REFERENCE_SHARE * frac

        ctx.reference = state
        ctx.reference_accuracy = accuracy(state.weights, ctx.records)
        ctx.metrics["reference_accuracy"] = ctx.reference_accuracy

        # ------------------------------
        # Bootstrap ensemble
        # ------------------------------
        rounds = acfg.bootstrap_rounds
        engine = BootstrapEngine(
            ctx.cfg.trainer,
            epochs=acfg.bootstrap_epochs,
            trust=trust,
            max_workers=acfg.max_workers,
        )

        ctx.ensemble = []
        for model in engine.iter_rounds(ctx.records, params, rounds, ctx.rng):
            ctx.ensemble.append(model)
            done = len(ctx.ensemble) / max(1, rounds)
            yield (
                f"Training ensemble model {len(ctx.ensemble)}/{rounds}...",
                REFERENCE_SHARE + (1.0 - REFERENCE_SHARE) * done,
            )

        ctx.weight_stats = weight_stats(ctx.ensemble)
        ctx.representative = mean_weights(ctx.ensemble)

        logs.info(
            f"[Ensemble] rounds={len(ctx.ensemble)} "
            f"reference_acc={ctx.reference_accuracy:.3f}"
        )
