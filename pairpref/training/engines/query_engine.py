# pairpref/training/engines/query_engine.py
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence

from pairpref.domain.features import FEATURE_KEYS, FEATURE_LABELS
from pairpref.training.engines.diagnostics_engine import FeatureStats
from pairpref.training.engines.scoring import count_votes_a, vote_disagreement
from pairpref.training.engines.train_result import EnsembleModel


@dataclass(frozen=True)
class QuerySuggestion:
    """A synthetic A-vs-B delta the ensemble disagrees on."""

    delta: Mapping[str, float]
    disagreement: float
    votes_a: int

    def dominant(self, n: int = 2) -> List[tuple]:
        ranked = sorted(self.delta.items(), key=lambda kv: abs(kv[1]), reverse=True)
        return ranked[:n]

    def describe(self) -> str:
        parts = [
            f"{_label(k)} ({v:+.2f})" for k, v in self.dominant(2)
        ]
        return (
            f"Trade-off: {' vs. '.join(parts)} "
            f"(disagreement {self.disagreement:.2f})"
        )


def _label(key: str) -> str:
    return FEATURE_LABELS.get(key, key)


def random_delta(stats: Mapping[str, FeatureStats], rng: random.Random) -> Dict[str, float]:
    """Each feature uniform in [-span, +span] (span already guarded against 0)."""
    out: Dict[str, float] = {}
    for f in FEATURE_KEYS:
        span = stats[f].span if f in stats else 1.0
        out[f] = rng.uniform(-span, span)
    return out


class QueryEngine:
    """
    Pool-based active learning.

    - 生成 pool_size 个合成 delta 向量
    - 每个向量按 ensemble 投票算 disagreement
    - 按 disagreement 降序（稳定排序），取 top n
    """

    def __init__(self, pool_size: int = 1000):
        self.pool_size = pool_size

    def rank_queries(
        self,
        ensemble: Sequence[EnsembleModel],
        stats: Mapping[str, FeatureStats],
        n: int,
        rng: Optional[random.Random] = None,
    ) -> List[QuerySuggestion]:
        rng = rng if rng is not None else random.Random()
        models = [m.weights for m in ensemble]

        pool: List[QuerySuggestion] = []
        for _ in range(self.pool_size):
            delta = random_delta(stats, rng)
            votes = count_votes_a(models, delta)
            pool.append(
                QuerySuggestion(
                    delta=delta,
                    disagreement=vote_disagreement(votes, len(models)),
                    votes_a=votes,
                )
            )

        pool.sort(key=lambda q: q.disagreement, reverse=True)
        return pool[:max(0, n)]


def suggest_queries(
    ensemble: Sequence[EnsembleModel],
    feature_stats: Mapping[str, FeatureStats],
    n: int,
    *,
    pool_size: int = 1000,
    rng: Optional[random.Random] = None,
) -> List[str]:
    ranked = QueryEngine(pool_size).rank_queries(ensemble, feature_stats, n, rng)
    return [q.describe() for q in ranked]
