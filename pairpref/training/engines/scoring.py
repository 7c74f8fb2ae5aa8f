# pairpref/training/engines/scoring.py
from __future__ import annotations

import math
from typing import Dict, Iterable, Mapping, Sequence

from pairpref.domain.features import ChoiceRecord, as_number

# logistic saturates outside ±SIGMOID_CLAMP
SIGMOID_CLAMP = 30.0


def sigmoid(z: float) -> float:
    if z > SIGMOID_CLAMP:
        return 1.0
    if z < -SIGMOID_CLAMP:
        return 0.0
    return 1.0 / (1.0 + math.exp(-z))


def diff(a: Mapping[str, float], b: Mapping[str, float]) -> Dict[str, float]:
    """x = a - b over the union of keys, missing → 0."""
    keys = dict.fromkeys(list(a) + list(b))
    return {k: as_number(a.get(k)) - as_number(b.get(k)) for k in keys}


def dot(weights: Mapping[str, float], x: Mapping[str, float]) -> float:
    s = 0.0
    for k, v in x.items():
        s += as_number(weights.get(k)) * v
    return s


def score(weights: Mapping[str, float], feat: Mapping[str, float]) -> float:
    return dot(weights, {k: as_number(v) for k, v in feat.items()})


def score_margin(
    weights: Mapping[str, float],
    feat_a: Mapping[str, float],
    feat_b: Mapping[str, float],
) -> float:
    """score(A) - score(B); 与 key 遍历顺序无关（逐项求和）"""
    return score(weights, feat_a) - score(weights, feat_b)


def predict(
    weights: Mapping[str, float],
    feat_a: Mapping[str, float],
    feat_b: Mapping[str, float],
) -> str:
    """"A" iff score(A) > score(B); ties go to "B"."""
    return "A" if score(weights, feat_a) > score(weights, feat_b) else "B"


def prob_choose_a(
    weights: Mapping[str, float],
    feat_a: Mapping[str, float],
    feat_b: Mapping[str, float],
) -> float:
    return sigmoid(dot(weights, diff(feat_a, feat_b)))


def softmax_prob(score_a: float, score_b: float) -> float:
    m = max(score_a, score_b)
    ea = math.exp(score_a - m)
    eb = math.exp(score_b - m)
    return ea / (ea + eb)


def accuracy(weights: Mapping[str, float], records: Sequence[ChoiceRecord]) -> float:
    if not records:
        return 0.0
    correct = 0
    for r in records:
        if predict(weights, r.feat_a, r.feat_b) == r.choice:
            correct += 1
    return correct / len(records)


def vote_disagreement(votes_a: int, size: int) -> float:
    """0 = unanimous, 1 = perfect 50/50 split; size 0 → 0."""
    if size <= 0:
        return 0.0
    return 1.0 - 2.0 * abs(0.5 - votes_a / size)


def count_votes_a(models: Iterable[Mapping[str, float]], delta: Mapping[str, float]) -> int:
    return sum(1 for w in models if dot(w, delta) > 0)
