# pairpref/workflows/offline_analysis.py
from __future__ import annotations

from typing import Optional

from pairpref.config.app_config import AppConfig
from pairpref.observability.instrumentation import Instrumentation
from pairpref.observability.progress import ProgressObserver
from pairpref.pipeline.scheduler import CancelToken
from pairpref.training.pipeline import AnalysisPipeline

from pairpref.training.steps.feature_stats_step import FeatureStatsStep
from pairpref.training.steps.grid_search_step import GridSearchStep
from pairpref.training.steps.ensemble_step import EnsembleStep
from pairpref.training.steps.diagnostics_step import DiagnosticsStep
from pairpref.training.steps.suggestion_step import SuggestionStep
from pairpref.training.steps.export_step import ExportStep


def build_offline_analysis(
        cfg: Optional[AppConfig] = None,
        observer: Optional[ProgressObserver] = None,
        cancel: Optional[CancelToken] = None,
        instrument: bool = True,
) -> AnalysisPipeline:
    """
    Offline Analysis Workflow (FINAL / FROZEN)

    stats → grid_search → ensemble → diagnostics → suggestions → export
    """

    if cfg is None:
        cfg = AppConfig.load()
    inst = Instrumentation(observer=observer) if instrument else None

    return AnalysisPipeline(
        steps=[
            FeatureStatsStep(inst),
            GridSearchStep(inst),
            EnsembleStep(inst),
            DiagnosticsStep(inst),
            SuggestionStep(inst),
            ExportStep(inst),
        ],
        cfg=cfg,
        inst=inst,
        observer=observer,
        cancel=cancel,
    )
