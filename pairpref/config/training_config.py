# pairpref/config/training_config.py
from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

from pairpref.domain.features import FEATURE_KEYS


class TrainerConfig(BaseModel):
    """
    TrainerConfig（ONLINE / FINAL）

    Adam 超参数 + 默认学习率 / L2
    """

    lr: float = 0.05
    l2: float = 0.001
    beta1: float = 0.9
    beta2: float = 0.999
    eps: float = 1e-8


class AnalysisConfig(BaseModel):
    """
    AnalysisConfig（BATCH / FINAL）

    Grid x folds x epochs x bootstrap rounds 决定总耗时，由调用方选择。
    """

    # preconditions
    min_records: int = 5

    # grid search
    learning_rates: List[float] = Field(
        default_factory=lambda: [0.01, 0.05, 0.1]
    )
    l2_rates: List[float] = Field(
        default_factory=lambda: [0.0001, 0.001, 0.01]
    )
    cv_folds: int = 5
    cv_epochs: int = 50

    # reference model + ensemble
    final_epochs: int = 500
    epoch_batch: int = 50
    bootstrap_rounds: int = 25
    bootstrap_epochs: int = 200

    # sample weighting
    trusted_modes: List[str] = Field(default_factory=lambda: ["PERFECTIONING"])
    trust_multiplier: int = 3
    trust_lr_boost: float = 1.0

    # diagnostics
    redundancy_threshold: float = 0.85
    tipping_margin: float = 2.0
    irrelevant_weight: float = 0.001
    coverage_cells: int = 3
    coverage_pairs: List[Tuple[str, str]] = Field(
        default_factory=lambda: [
            ("waitPenalty", "distanceNorm"),
            ("totalCoveredMin", "switchPenalty"),
        ]
    )
    margin_threshold: float = 0.15
    disagreement_threshold: float = 0.3
    critical_disagreement: float = 0.4
    critical_limit: int = 10
    loo_limit: int = 50
    loo_epochs: int = 100

    # active learning
    query_pool_size: int = 1000
    query_count: int = 5

    # runtime
    seed: Optional[int] = None
    max_workers: int = 1

    @field_validator("learning_rates", "l2_rates")
    @classmethod
    def _non_empty_grid(cls, v: List[float]) -> List[float]:
        if not v:
            raise ValueError("hyperparameter grid must not be empty")
        return v

    @field_validator("cv_folds", "coverage_cells", "trust_multiplier", "epoch_batch")
    @classmethod
    def _at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @model_validator(mode="after")
    def _known_coverage_features(self) -> "AnalysisConfig":
        for fx, fy in self.coverage_pairs:
            for f in (fx, fy):
                if f not in FEATURE_KEYS:
                    raise ValueError(f"Unknown coverage feature: {f}")
        return self


class SessionConfig(BaseModel):
    """
    Online session: 每个 mode 一套独立模型（学习率不同）
    """

    modes: Dict[str, float] = Field(
        default_factory=lambda: {"LOCKER": 0.05, "HUSTLE": 0.04}
    )
    default_mode: str = "LOCKER"
    l2: float = 0.001

    @model_validator(mode="after")
    def _default_mode_known(self) -> "SessionConfig":
        if self.default_mode not in self.modes:
            raise ValueError(
                f"default_mode={self.default_mode} not in modes={list(self.modes)}"
            )
        return self


class ProfileConfig(BaseModel):
    """
    Group / profile comparison: 每个文件单独 batch 训练一个模型
    """

    epochs: int = 50
    lr: float = 0.1
    l2: float = 0.001
