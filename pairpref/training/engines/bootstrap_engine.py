# pairpref/training/engines/bootstrap_engine.py
from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from pairpref import logs
from pairpref.config.training_config import TrainerConfig
from pairpref.domain.features import FEATURE_KEYS, ChoiceRecord
from pairpref.pipeline.parallel.executor import ParallelExecutor
from pairpref.pipeline.parallel.types import ParallelKind
from pairpref.training.engines.model_train_engine import (
    NO_TRUST,
    AdamPairwiseTrainEngine,
    TrustPolicy,
)
from pairpref.training.engines.scoring import count_votes_a, diff, vote_disagreement
from pairpref.training.engines.train_result import BestParams, EnsembleModel


@dataclass(frozen=True)
class WeightStats:
    mean: float
    std: float
    median: float
    min: float
    max: float
    stability: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "mean": self.mean,
            "std": self.std,
            "median": self.median,
            "min": self.min,
            "max": self.max,
            "stability": self.stability,
        }


def resample(
    records: Sequence[ChoiceRecord],
    rng: random.Random,
    trust: TrustPolicy = NO_TRUST,
) -> List[ChoiceRecord]:
    """
    n draws with replacement, then (multiplier - 1) extra copies of every
    trusted record of the *input*.
    """
    n = len(records)
    sample = [records[rng.randrange(n)] for _ in range(n)] if n else []

    extra = trust.multiplier - 1
    if extra > 0:
        for r in records:
            if trust.is_trusted(r):
                sample.extend([r] * extra)
    return sample


def _run_round(args) -> Tuple[int, Dict[str, float]]:
    # 返回 plain dict：MappingProxyType 无法跨进程 pickle，由调用方 freeze
    index, sample, lr, l2, epochs, cfg, trust = args
    engine = AdamPairwiseTrainEngine(cfg, trust)
    state = engine.train(sample, lr=lr, l2=l2, epochs=epochs)
    return index, dict(state.weights)


class BootstrapEngine:
    """
    BootstrapEngine（FINAL）

    Semantics:
    - 每个 round：重采样 → fresh weights + fresh OptimizerState → 训练
    - 随机源可注入（random.Random），固定 seed 即可复现
    - 重采样总在调用方进程内按 round 顺序抽取，
      因此串行 / 并行两种执行方式结果一致
    """

    def __init__(
        self,
        cfg: Optional[TrainerConfig] = None,
        *,
        epochs: int = 200,
        trust: TrustPolicy = NO_TRUST,
        max_workers: int = 1,
    ):
        self.cfg = cfg or TrainerConfig()
        self.epochs = epochs
        self.trust = trust
        self.max_workers = max_workers

    def iter_rounds(
        self,
        records: Sequence[ChoiceRecord],
        params: BestParams,
        rounds: int,
        rng: Optional[random.Random] = None,
    ) -> Iterator[EnsembleModel]:
        rng = rng if rng is not None else random.Random()

        if self.max_workers > 1:
            jobs = [
                (i, resample(records, rng, self.trust), params.lr, params.l2,
                 self.epochs, self.cfg, self.trust)
                for i in range(rounds)
            ]
            for index, weights in ParallelExecutor.run(
                kind=ParallelKind.BOOTSTRAP,
                items=jobs,
                handler=_run_round,
                max_workers=self.max_workers,
            ):
                yield EnsembleModel.freeze(weights, round_index=index)
            return

        for i in range(rounds):
            sample = resample(records, rng, self.trust)
            index, weights = _run_round((i, sample, params.lr, params.l2, self.epochs, self.cfg, self.trust))
            yield EnsembleModel.freeze(weights, round_index=index)

    def train_ensemble(
        self,
        records: Sequence[ChoiceRecord],
        params: BestParams,
        rounds: int,
        rng: Optional[random.Random] = None,
    ) -> List[EnsembleModel]:
        ensemble = list(self.iter_rounds(records, params, rounds, rng))
        logs.info(f"[Bootstrap] trained {len(ensemble)} models on {len(records)} records")
        return ensemble


def train_ensemble(
    records: Sequence[ChoiceRecord],
    params: BestParams,
    rounds: int,
    *,
    epochs: int = 200,
    rng: Optional[random.Random] = None,
    trust: TrustPolicy = NO_TRUST,
) -> List[EnsembleModel]:
    engine = BootstrapEngine(epochs=epochs, trust=trust)
    return engine.train_ensemble(records, params, rounds, rng)


# ============================================================
# Ensemble statistics
# ============================================================
def _median(values: List[float]) -> float:
    s = sorted(values)
    n = len(s)
    mid = n // 2
    if n % 2:
        return s[mid]
    return (s[mid - 1] + s[mid]) / 2.0


def weight_stats(ensemble: Sequence[EnsembleModel]) -> Dict[str, WeightStats]:
    """
    Per-feature mean / population std / median over the ensemble.
    std is the uncertainty signal; empty ensemble → all zeros.
    """
    out: Dict[str, WeightStats] = {}
    for f in FEATURE_KEYS:
        vals = [m.weights.get(f, 0.0) for m in ensemble]
        if not vals:
            out[f] = WeightStats(0.0, 0.0, 0.0, 0.0, 0.0, 0.0)
            continue

        mean = sum(vals) / len(vals)
        var = sum((v - mean) ** 2 for v in vals) / len(vals)
        std = math.sqrt(var)
        stability = 1.0 - min(1.0, std / (abs(mean) + 0.5))

        out[f] = WeightStats(
            mean=mean,
            std=std,
            median=_median(vals),
            min=min(vals),
            max=max(vals),
            stability=stability,
        )
    return out


def mean_weights(ensemble: Sequence[EnsembleModel]) -> Dict[str, float]:
    """Representative model = per-feature mean weight."""
    return {f: s.mean for f, s in weight_stats(ensemble).items()}


def median_weights(stats: Mapping[str, WeightStats]) -> Dict[str, float]:
    """Per-feature median; robust to outlier rounds, used for export."""
    return {f: s.median for f, s in stats.items()}


def ensemble_disagreement(
    ensemble: Sequence[EnsembleModel],
    feat_a: Mapping[str, float],
    feat_b: Mapping[str, float],
) -> float:
    delta = diff(feat_a, feat_b)
    votes = count_votes_a((m.weights for m in ensemble), delta)
    return vote_disagreement(votes, len(ensemble))
