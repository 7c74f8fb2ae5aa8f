# tests/conftest.py
from __future__ import annotations

import random
from typing import Callable, List

import pytest
from loguru import logger

from pairpref.config.app_config import AppConfig
from pairpref.config.training_config import AnalysisConfig
from pairpref.domain.features import ChoiceRecord, FeatureVector


@pytest.fixture(autouse=True)
def disable_file_logger():
    logger.remove()
    logger.add(lambda msg: None)
    yield


def rec(a: dict, b: dict, choice: str = "A", mode: str | None = None) -> ChoiceRecord:
    return ChoiceRecord.build(a, b, choice, mode)


@pytest.fixture
def make_record() -> Callable[..., ChoiceRecord]:
    return rec


@pytest.fixture
def distance_records() -> List[ChoiceRecord]:
    """10 × A chosen, A is closer (distanceNorm 0 vs 1), nothing else differs."""
    return [rec({"distanceNorm": 0.0}, {"distanceNorm": 1.0}, "A") for _ in range(10)]


@pytest.fixture
def synthetic_records() -> List[ChoiceRecord]:
    """
    User dislikes waiting and walking; choices follow a hidden linear rule.
    """
    rng = random.Random(42)
    out: List[ChoiceRecord] = []
    for i in range(30):
        a = {
            "distanceNorm": rng.uniform(0, 1),
            "waitPenalty": rng.uniform(0, 60),
            "switchPenalty": rng.randint(0, 4),
            "totalCoveredMin": rng.uniform(100, 300),
        }
        b = {
            "distanceNorm": rng.uniform(0, 1),
            "waitPenalty": rng.uniform(0, 60),
            "switchPenalty": rng.randint(0, 4),
            "totalCoveredMin": rng.uniform(100, 300),
        }
        util_a = -2.0 * a["distanceNorm"] - 0.05 * a["waitPenalty"]
        util_b = -2.0 * b["distanceNorm"] - 0.05 * b["waitPenalty"]
        mode = "PERFECTIONING" if i % 5 == 0 else "LOCKER"
        out.append(rec(a, b, "A" if util_a > util_b else "B", mode))
    return out


@pytest.fixture
def small_cfg() -> AppConfig:
    """Tiny epoch / round counts: fast but still exercises every phase."""
    return AppConfig(
        analysis=AnalysisConfig(
            learning_rates=[0.05, 0.1],
            l2_rates=[0.001],
            cv_folds=3,
            cv_epochs=3,
            final_epochs=6,
            epoch_batch=2,
            bootstrap_rounds=4,
            bootstrap_epochs=3,
            loo_limit=3,
            loo_epochs=2,
            query_pool_size=50,
            query_count=3,
            seed=7,
        )
    )


@pytest.fixture
def feature_vector() -> Callable[..., FeatureVector]:
    return lambda **kw: FeatureVector(**kw)
