# pairpref/training/context.py
from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pairpref.config.app_config import AppConfig
from pairpref.domain.features import ChoiceRecord
from pairpref.training.engines.bootstrap_engine import WeightStats
from pairpref.training.engines.diagnostics_engine import (
    CoverageGrid,
    FeatureStats,
    Inconsistency,
    RedundantPair,
    TippingPoint,
    UncertaintyReport,
)
from pairpref.training.engines.query_engine import QuerySuggestion
from pairpref.training.engines.train_result import (
    BestParams,
    EnsembleModel,
    ModelState,
    TrialResult,
)


@dataclass
class DiagnosticsReport:
    baseline_accuracy: float = 0.0
    importance: Dict[str, float] = field(default_factory=dict)
    correlations: Dict[str, Dict[str, float]] = field(default_factory=dict)
    redundant: List[RedundantPair] = field(default_factory=list)
    tipping: Dict[str, TippingPoint] = field(default_factory=dict)
    coverage: List[CoverageGrid] = field(default_factory=list)
    uncertainty: Optional[UncertaintyReport] = None
    inconsistencies: List[Inconsistency] = field(default_factory=list)


@dataclass
class AnalysisContext:
    """
    AnalysisContext（FINAL）

    Semantics:
    - One context == one batch analysis run
    - run_id is immutable and mandatory
    - 每个 phase 的输出即下一个 phase 的输入
    """

    # -------------------------
    # Identity
    # -------------------------
    run_id: str

    # -------------------------
    # Static bindings
    # -------------------------
    cfg: AppConfig
    rng: random.Random

    # -------------------------
    # Input
    # -------------------------
    records: List[ChoiceRecord] = field(default_factory=list)
    rejected: List[Tuple[int, str]] = field(default_factory=list)

    # -------------------------
    # Phase outputs
    # -------------------------
    stats: Dict[str, FeatureStats] = field(default_factory=dict)
    trials: List[TrialResult] = field(default_factory=list)
    best_params: Optional[BestParams] = None
    reference: Optional[ModelState] = None
    reference_accuracy: float = 0.0
    ensemble: List[EnsembleModel] = field(default_factory=list)
    weight_stats: Dict[str, WeightStats] = field(default_factory=dict)
    representative: Dict[str, float] = field(default_factory=dict)
    diagnostics: DiagnosticsReport = field(default_factory=DiagnosticsReport)
    queries: List[QuerySuggestion] = field(default_factory=list)
    production_config: Dict[str, float] = field(default_factory=dict)

    metrics: Dict[str, Any] = field(default_factory=dict)
    result: Optional[Any] = None
