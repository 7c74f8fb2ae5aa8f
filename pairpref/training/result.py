# pairpref/training/result.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from pairpref.training.context import AnalysisContext


@dataclass(frozen=True)
class AnalysisResult:
    """
    AnalysisResult（FINAL / FROZEN）

    语义：
    - 一次完整 batch analysis 的纯内存态结果
    - to_dict() 是 JSON 报告的唯一格式
    """

    run_id: str
    best_params: Dict[str, float]
    cv_score: float
    reference_accuracy: float
    weights: Dict[str, Dict[str, float]]
    production_config: Dict[str, float]
    diagnostics: Dict[str, Any]
    suggestions: List[str]
    meta: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "meta": dict(self.meta),
            "best_params": dict(self.best_params),
            "cv_score": self.cv_score,
            "reference_accuracy": self.reference_accuracy,
            "weights": {k: dict(v) for k, v in self.weights.items()},
            "production_config": dict(self.production_config),
            "diagnostics": self.diagnostics,
            "suggestions": list(self.suggestions),
        }

    @classmethod
    def from_context(cls, ctx: AnalysisContext) -> "AnalysisResult":
        d = ctx.diagnostics

        weights: Dict[str, Dict[str, float]] = {}
        for f, s in ctx.weight_stats.items():
            row = s.to_dict()
            row["importance"] = d.importance.get(f, 0.0)
            weights[f] = row

        unc = d.uncertainty
        diagnostics: Dict[str, Any] = {
            "baseline_accuracy": d.baseline_accuracy,
            "redundant_pairs": [p.describe() for p in d.redundant],
            "correlations": {k: dict(v) for k, v in d.correlations.items()},
            "tipping_points": {f: t.describe() for f, t in d.tipping.items()},
            "coverage": {
                g.name: {
                    "cells": [
                        {
                            "ix": c.ix,
                            "iy": c.iy,
                            "x_range": list(c.x_range),
                            "y_range": list(c.y_range),
                            "count": c.count,
                        }
                        for c in g.cells
                    ],
                    "points_in_box": g.points_in_box,
                }
                for g in d.coverage
            },
            "blind_spots": [
                g.describe_blind_spot(c) for g in d.coverage for c in g.blind_spots()
            ],
            "inconsistencies": [
                {"index": i.index, "choice": i.choice, "prediction": i.prediction, "mode": i.mode}
                for i in d.inconsistencies
            ],
        }
        if unc is not None:
            diagnostics["uncertainty"] = {
                "mean_margin": unc.mean_margin,
                "margin_histogram": list(unc.margin_histogram),
                "disagreement_count": unc.disagreement_count,
                "uncertainty_ratio": unc.uncertainty_ratio,
                "dataset_health": unc.dataset_health,
                "critical_samples": [
                    {
                        "index": c.index,
                        "margin": c.margin,
                        "disagreement": c.disagreement,
                        "reason": c.reason,
                        "mode": c.mode,
                    }
                    for c in unc.critical_samples
                ],
            }

        best = ctx.best_params
        return cls(
            run_id=ctx.run_id,
            best_params={"lr": best.lr, "l2": best.l2} if best else {},
            cv_score=best.score if best else 0.0,
            reference_accuracy=ctx.reference_accuracy,
            weights=weights,
            production_config=dict(ctx.production_config),
            diagnostics=diagnostics,
            suggestions=[q.describe() for q in ctx.queries],
            meta=dict(ctx.metrics),
        )
