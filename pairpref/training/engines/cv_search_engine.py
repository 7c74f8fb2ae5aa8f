# pairpref/training/engines/cv_search_engine.py
from __future__ import annotations

from typing import Iterator, List, Optional, Sequence, Tuple

from pairpref import logs
from pairpref.config.training_config import TrainerConfig
from pairpref.domain.features import ChoiceRecord
from pairpref.pipeline.parallel.executor import ParallelExecutor
from pairpref.pipeline.parallel.types import ParallelKind
from pairpref.training.engines.model_train_engine import (
    NO_TRUST,
    AdamPairwiseTrainEngine,
    TrustPolicy,
)
from pairpref.training.engines.scoring import accuracy
from pairpref.training.engines.train_result import BestParams, TrialResult


def fold_bounds(n: int, folds: int) -> List[Tuple[int, int]]:
    """
    k contiguous [start, end) folds, k = min(folds, n).

    每个 fold 非空；n == 0 → 没有 fold（调用方得到 score 0）。
    """
    if n <= 0:
        return []
    k = max(1, min(folds, n))
    return [(i * n // k, (i + 1) * n // k) for i in range(k)]


def cross_validate(
    records: Sequence[ChoiceRecord],
    *,
    lr: float,
    l2: float,
    epochs: int,
    folds: int,
    engine: AdamPairwiseTrainEngine,
) -> Tuple[float, Tuple[float, ...]]:
    """Mean held-out accuracy over contiguous folds; every fold trains from scratch."""
    bounds = fold_bounds(len(records), folds)
    if not bounds:
        return 0.0, ()

    scores: List[float] = []
    for start, end in bounds:
        train = list(records[:start]) + list(records[end:])
        test = records[start:end]
        state = engine.train(train, lr=lr, l2=l2, epochs=epochs)
        scores.append(accuracy(state.weights, test))

    return sum(scores) / len(scores), tuple(scores)


def _run_trial(args) -> TrialResult:
    # 模块级 handler：ProcessPoolExecutor 需要可 pickle
    index, records, lr, l2, epochs, folds, cfg, trust = args
    engine = AdamPairwiseTrainEngine(cfg, trust)
    mean, fold_scores = cross_validate(
        records, lr=lr, l2=l2, epochs=epochs, folds=folds, engine=engine
    )
    return TrialResult(index=index, lr=lr, l2=l2, score=mean, fold_scores=fold_scores)


class GridSearchEngine:
    """
    GridSearchEngine（k-fold CV over lr × l2）

    语义：
    - grid 顺序 = lr 外层, l2 内层
    - 最高平均 accuracy 胜出；平局保留先出现的组合
    - best 一定是 grid 中的某一对，从不插值
    """

    def __init__(
        self,
        cfg: Optional[TrainerConfig] = None,
        *,
        folds: int = 5,
        epochs: int = 50,
        trust: TrustPolicy = NO_TRUST,
        max_workers: int = 1,
    ):
        self.cfg = cfg or TrainerConfig()
        self.folds = folds
        self.epochs = epochs
        self.trust = trust
        self.max_workers = max_workers

    @staticmethod
    def grid(learning_rates: Sequence[float], l2_rates: Sequence[float]) -> List[Tuple[float, float]]:
        return [(lr, l2) for lr in learning_rates for l2 in l2_rates]

    def iter_trials(
        self,
        records: Sequence[ChoiceRecord],
        learning_rates: Sequence[float],
        l2_rates: Sequence[float],
    ) -> Iterator[TrialResult]:
        """
        Yields one TrialResult per grid cell, in grid order.

        max_workers == 1 → one trial per `next()` (caller regains control
        between trials); otherwise all trials run on the process pool first.
        """
        pairs = self.grid(learning_rates, l2_rates)
        jobs = [
            (i, list(records), lr, l2, self.epochs, self.folds, self.cfg, self.trust)
            for i, (lr, l2) in enumerate(pairs)
        ]

        if self.max_workers > 1:
            yield from ParallelExecutor.run(
                kind=ParallelKind.TRIAL,
                items=jobs,
                handler=_run_trial,
                max_workers=self.max_workers,
            )
            return

        for job in jobs:
            trial = _run_trial(job)
            logs.debug(
                f"[GridSearch] trial {trial.index + 1}/{len(jobs)} "
                f"lr={trial.lr} l2={trial.l2} score={trial.score:.4f}"
            )
            yield trial

    @staticmethod
    def select_best(trials: Sequence[TrialResult]) -> BestParams:
        if not trials:
            raise ValueError("select_best() needs at least one trial")

        best = trials[0]
        for trial in trials[1:]:
            if trial.score > best.score:
                best = trial
        return BestParams(lr=best.lr, l2=best.l2, score=best.score)

    def search(
        self,
        records: Sequence[ChoiceRecord],
        learning_rates: Sequence[float],
        l2_rates: Sequence[float],
    ) -> BestParams:
        trials = list(self.iter_trials(records, learning_rates, l2_rates))
        best = self.select_best(trials)
        logs.info(
            f"[GridSearch] best lr={best.lr} l2={best.l2} "
            f"cv={best.score:.4f} over {len(trials)} trials"
        )
        return best


def search(
    records: Sequence[ChoiceRecord],
    learning_rates: Sequence[float],
    l2_rates: Sequence[float],
    epochs_per_trial: int,
    folds: int = 5,
) -> BestParams:
    engine = GridSearchEngine(folds=folds, epochs=epochs_per_trial)
    return engine.search(records, learning_rates, l2_rates)
