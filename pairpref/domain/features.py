# pairpref/domain/features.py
from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Literal, Optional

# ============================================================
# Feature contract (FROZEN)
# ============================================================
FEATURE_KEYS: tuple[str, ...] = (
    "distanceNorm",
    "waitPenalty",
    "switchPenalty",
    "stabilityPenalty",
    "productiveLossMin",
    "riskLateMin",
    "totalPlannedMin",
    "totalCoveredMin",
)

FEATURE_LABELS: Dict[str, str] = {
    "distanceNorm": "walking distance",
    "waitPenalty": "waiting time",
    "switchPenalty": "room switches",
    "stabilityPenalty": "short blocks",
    "productiveLossMin": "switch loss",
    "riskLateMin": "late check-in risk",
    "totalPlannedMin": "planned time",
    "totalCoveredMin": "covered time",
}

Choice = Literal["A", "B"]
CHOICES: tuple[str, ...] = ("A", "B")

WeightVector = Dict[str, float]


def as_number(value: Any) -> float:
    """
    Fail-soft numeric coercion.

    None → 0.0, anything float() rejects → NaN. Never raises.
    """
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


@dataclass(frozen=True)
class FeatureVector(Mapping):
    """
    FeatureVector（FINAL / FROZEN）

    语义：
    - 一个候选 strategy 的全部数值特征
    - key 集合封闭且有序（FEATURE_KEYS）
    - 同时是只读 Mapping[str, float]，可直接交给 scoring / trainer
    """

    distanceNorm: float = 0.0
    waitPenalty: float = 0.0
    switchPenalty: float = 0.0
    stabilityPenalty: float = 0.0
    productiveLossMin: float = 0.0
    riskLateMin: float = 0.0
    totalPlannedMin: float = 0.0
    totalCoveredMin: float = 0.0

    @classmethod
    def from_mapping(cls, values: Optional[Mapping[str, Any]]) -> "FeatureVector":
        """Missing keys default to 0; unknown keys are ignored."""
        values = values or {}
        return cls(**{k: as_number(values.get(k)) for k in FEATURE_KEYS})

    def replace(self, **changes: float) -> "FeatureVector":
        data = dict(self)
        data.update(changes)
        return FeatureVector(**data)

    # ---------------- Mapping protocol ----------------
    def __getitem__(self, key: str) -> float:
        if key not in FEATURE_KEYS:
            raise KeyError(key)
        return getattr(self, key)

    def __iter__(self) -> Iterator[str]:
        return iter(FEATURE_KEYS)

    def __len__(self) -> int:
        return len(FEATURE_KEYS)


@dataclass(frozen=True)
class ChoiceRecord:
    """
    ChoiceRecord（FINAL / FROZEN）

    - feat_a / feat_b 由外部 strategy generator 产生，只读
    - mode 标记来源（如 "PERFECTIONING"），决定 sample weighting
    """

    feat_a: FeatureVector
    feat_b: FeatureVector
    choice: str
    mode: Optional[str] = None

    @classmethod
    def build(
        cls,
        feat_a: Mapping[str, Any],
        feat_b: Mapping[str, Any],
        choice: str,
        mode: Optional[str] = None,
    ) -> "ChoiceRecord":
        fa = feat_a if isinstance(feat_a, FeatureVector) else FeatureVector.from_mapping(feat_a)
        fb = feat_b if isinstance(feat_b, FeatureVector) else FeatureVector.from_mapping(feat_b)
        return cls(feat_a=fa, feat_b=fb, choice=choice, mode=mode)

    def to_row(self) -> Dict[str, Any]:
        row: Dict[str, Any] = {f"A_{k}": self.feat_a[k] for k in FEATURE_KEYS}
        row.update({f"B_{k}": self.feat_b[k] for k in FEATURE_KEYS})
        row["choice"] = self.choice
        row["mode"] = self.mode
        return row


def init_weights() -> WeightVector:
    return {k: 0.0 for k in FEATURE_KEYS}
