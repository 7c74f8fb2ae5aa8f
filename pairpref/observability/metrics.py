#!filepath: pairpref/observability/metrics.py
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from pairpref import logs


@dataclass
class MetricRecorder:
    """
    Run-level scalar metrics (record_count, cv_score, reference_accuracy, ...).

    Steps write into ctx.metrics; the pipeline publishes them here once per run.
    """

    enabled: bool = True
    metrics: Dict[str, Any] = field(default_factory=dict)

    def record(self, name: str, value: Any) -> None:
        if not self.enabled:
            return
        self.metrics[name] = value
        logs.info(f"[Metric] {name} = {value}")

    def record_many(self, values: Mapping[str, Any], prefix: str = "") -> None:
        for name, value in values.items():
            self.record(f"{prefix}{name}", value)

    def snapshot(self) -> Dict[str, Any]:
        return dict(self.metrics)
