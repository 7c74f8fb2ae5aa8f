# pairpref/training/engines/profile_engine.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from pairpref import logs
from pairpref.config.training_config import ProfileConfig, TrainerConfig
from pairpref.domain.features import FEATURE_KEYS, FEATURE_LABELS, ChoiceRecord
from pairpref.domain.validation import split_valid
from pairpref.training.engines.model_train_engine import train_model
from pairpref.training.engines.scoring import accuracy
from pairpref.utils.errors import InsufficientDataError


@dataclass(frozen=True)
class Profile:
    """One choice log trained on its own: weights + how well they fit it."""

    name: str
    user_id: Optional[str]
    record_count: int
    weights: Dict[str, float]
    consistency: float

    @property
    def label(self) -> str:
        return self.user_id or self.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "user_id": self.user_id,
            "record_count": self.record_count,
            "weights": dict(self.weights),
            "consistency": self.consistency,
        }


@dataclass(frozen=True)
class FeatureSpread:
    mean: float
    std: float


@dataclass
class GroupReport:
    """
    Cross-profile comparison.

    - features       : per-feature mean / population std over the profiles
    - most_uncertain : feature the profiles disagree on most (largest std)
    - most_consistent: feature they agree on most (smallest std)
    """

    profiles: List[Profile] = field(default_factory=list)
    features: Dict[str, FeatureSpread] = field(default_factory=dict)
    most_uncertain: str = ""
    most_consistent: str = ""

    def by_strength(self) -> List[str]:
        """Features ordered by |mean| descending (strongest shared opinion first)."""
        return sorted(self.features, key=lambda f: abs(self.features[f].mean), reverse=True)

    def recommendation(self) -> str:
        label = FEATURE_LABELS.get(self.most_uncertain, self.most_uncertain)
        return (
            f"Profiles disagree most on {label}: "
            f"train scenarios where it varies strongly to force a consensus"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "profiles": [p.to_dict() for p in self.profiles],
            "features": {
                f: {"mean": s.mean, "std": s.std} for f, s in self.features.items()
            },
            "most_uncertain": self.most_uncertain,
            "most_consistent": self.most_consistent,
        }


def spread(values: Sequence[float]) -> FeatureSpread:
    n = len(values)
    if n == 0:
        return FeatureSpread(0.0, 0.0)
    mean = sum(values) / n
    var = sum((v - mean) ** 2 for v in values) / n
    return FeatureSpread(mean, math.sqrt(var))


def group_stats(profiles: Sequence[Profile]) -> GroupReport:
    if not profiles:
        raise InsufficientDataError(0, 1)

    features = {
        f: spread([p.weights.get(f, 0.0) for p in profiles]) for f in FEATURE_KEYS
    }
    # stable: ties keep FEATURE_KEYS order
    ranked = sorted(FEATURE_KEYS, key=lambda f: features[f].std, reverse=True)

    return GroupReport(
        profiles=list(profiles),
        features=features,
        most_uncertain=ranked[0],
        most_consistent=ranked[-1],
    )


class ProfileEngine:
    """
    ProfileEngine（BATCH）

    - 每个 profile 独立训练（fresh weights，固定 epochs / lr，无 CV / ensemble）
    - consistency = 训练集上的 accuracy
    - 没有合法 record 的 profile 跳过
    """

    def __init__(self, cfg: Optional[ProfileConfig] = None, trainer: Optional[TrainerConfig] = None):
        self.cfg = cfg or ProfileConfig()
        self.trainer = trainer or TrainerConfig()

    def profile(
            self,
            name: str,
            records: Sequence[ChoiceRecord],
            user_id: Optional[str] = None,
    ) -> Optional[Profile]:
        valid, rejected = split_valid(records)
        if rejected:
            logs.warning(f"[Profiles] {name}: skipped {len(rejected)} malformed records")
        if not valid:
            logs.warning(f"[Profiles] {name}: no valid records, profile skipped")
            return None

        state = train_model(
            valid,
            lr=self.cfg.lr,
            l2=self.cfg.l2,
            epochs=self.cfg.epochs,
            cfg=self.trainer,
        )
        profile = Profile(
            name=name,
            user_id=user_id,
            record_count=len(valid),
            weights=dict(state.weights),
            consistency=accuracy(state.weights, valid),
        )
        logs.info(
            f"[Profiles] {profile.label}: records={profile.record_count} "
            f"consistency={profile.consistency:.2f}"
        )
        return profile

    def compare(self, profiles: Sequence[Profile]) -> GroupReport:
        report = group_stats(profiles)
        logs.info(
            f"[Profiles] n={len(report.profiles)} "
            f"most_uncertain={report.most_uncertain} most_consistent={report.most_consistent}"
        )
        return report
