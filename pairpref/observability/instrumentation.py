#!filepath: pairpref/observability/instrumentation.py
from __future__ import annotations

from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Optional

from pairpref.observability.metrics import MetricRecorder
from pairpref.observability.progress import ProgressObserver, ProgressReporter
from pairpref.observability.timeline_reporter import TimelineReporter
from pairpref.observability.timer import Timer


@dataclass
class Instrumentation:
    """
    Instrumentation（Leaf-only accounting + Parent scope）

    设计铁律：
    1. Timeline 只记录【叶子节点】（record=True）
    2. 父级 timer 仅作为时间语义边界（record=False）
    3. Instrumentation 本身不在热路径打日志
    """

    enabled: bool = True
    observer: Optional[ProgressObserver] = None
    timeline: Dict[str, float] = field(default_factory=OrderedDict)

    def __post_init__(self):
        self.progress = ProgressReporter(enabled=self.enabled, observer=self.observer)
        self._timer = Timer(enabled=self.enabled)
        self.metrics = MetricRecorder(enabled=self.enabled)

    def timer(self, name: str, *, record: bool = True):
        inst = self

        @contextmanager
        def _ctx():
            if not inst.enabled:
                yield
                return

            inst._timer.start(name)
            try:
                yield
            finally:
                elapsed = inst._timer.end(name)
                if record:
                    inst.timeline[name] = elapsed

        return _ctx()

    def generate_timeline_report(self, run_id: str):
        TimelineReporter(self.timeline, run_id).print()


class NoOpInstrumentation:
    """Instrumentation disabled 时使用。"""

    def __init__(self, observer: Optional[ProgressObserver] = None):
        self.progress = ProgressReporter(enabled=observer is not None, observer=observer)
        self.metrics = MetricRecorder(enabled=False)
        self.timeline: Dict[str, float] = OrderedDict()

    def timer(self, name: str, *, record: bool = True):
        return _NoOpTimer()

    def generate_timeline_report(self, run_id: str):
        pass


class _NoOpTimer:
    def __enter__(self):
        pass

    def __exit__(self, exc_type, exc, tb):
        pass
