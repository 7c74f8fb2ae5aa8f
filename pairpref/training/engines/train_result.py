from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping

from pairpref.domain.features import WeightVector
from pairpref.training.engines.online_trainer import OptimizerState


@dataclass
class ModelState:
    """
    可变训练态：weights + optimizer state，由一次训练调用独占
    """

    weights: WeightVector
    opt: OptimizerState = field(default_factory=OptimizerState.fresh)

    def copy(self) -> "ModelState":
        return ModelState(weights=dict(self.weights), opt=self.opt.copy())

    def to_dict(self) -> Dict[str, Any]:
        return {"weights": dict(self.weights), "opt": self.opt.to_dict()}

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ModelState":
        return cls(
            weights={k: float(v) for k, v in (raw.get("weights") or {}).items()},
            opt=OptimizerState.from_dict(raw.get("opt")),
        )


@dataclass(frozen=True)
class EnsembleModel:
    """
    EnsembleModel（FINAL / FROZEN）

    语义：
    - 一次完整 bootstrap round 的训练结果
    - weights 只读（MappingProxyType），训练结束后不可变
    """

    weights: Mapping[str, float]
    round_index: int = 0

    @classmethod
    def freeze(cls, weights: Mapping[str, float], round_index: int = 0) -> "EnsembleModel":
        return cls(weights=MappingProxyType(dict(weights)), round_index=round_index)


@dataclass(frozen=True)
class BestParams:
    lr: float
    l2: float
    score: float


@dataclass(frozen=True)
class TrialResult:
    """One (lr, l2) grid cell evaluated by k-fold CV."""

    index: int
    lr: float
    l2: float
    score: float
    fold_scores: tuple[float, ...] = ()
