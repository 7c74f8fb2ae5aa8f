# pairpref/training/engines/export_engine.py
"""
Learned weights → constants of the external production scorer.

POLICY (subject to change): the mapping below is a hand-tuned convention of
the downstream scorer, not something the learner derives. Every constant
lives in `ExportPolicy`; every rule is a named function so it can be tested
and replaced on its own.

Learned weights are "penalty style": a negative weight on a penalty feature
means the user dislikes that property.
"""
from __future__ import annotations

from typing import Dict, Mapping, Optional

from pairpref.config.export_config import ExportPolicy


def learned_or_default(weights: Mapping[str, float], key: str, default: float) -> float:
    """An exactly-zero (or missing) weight counts as untrained."""
    w = weights.get(key, 0.0)
    return w if w else default


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def penalty_to_bonus(weight: float, scale: float = -2.0, fallback: float = 0.5) -> float:
    """
    Sign-invert and rescale a penalty weight into an additive bonus.

    A negative stability-penalty weight (instability disliked) becomes a
    positive stay-in-room bonus. A negative result falls back to `fallback`.
    """
    bonus = weight * scale
    return fallback if bonus < 0 else abs(bonus)


def to_production_config(
    weights: Mapping[str, float],
    policy: Optional[ExportPolicy] = None,
) -> Dict[str, float]:
    p = policy or ExportPolicy()

    covered = max(
        p.covered_min_floor,
        learned_or_default(weights, "totalCoveredMin", p.covered_min_default),
    )

    wait = clamp(
        learned_or_default(weights, "waitPenalty", p.wait_penalty_default),
        p.wait_penalty_min,
        0.0,
    )

    switch_bonus = learned_or_default(weights, "switchPenalty", p.switch_bonus_default)
    if switch_bonus > p.switch_bonus_cap:
        switch_bonus = p.switch_bonus_capped_value

    stability_bonus = penalty_to_bonus(
        weights.get("stabilityPenalty", 0.0),
        scale=p.stability_scale,
        fallback=p.stability_fallback,
    )

    return {
        "totalCoveredMin": covered,
        "waitPenalty": wait,
        "switchBonus": switch_bonus,
        "stabilityBonus": stability_bonus,
        "productiveLossMin": learned_or_default(
            weights, "productiveLossMin", p.productive_loss_default
        ),
        "preferredRoomBonus": p.preferred_room_bonus,
    }
