#!filepath: pairpref/observability/progress.py
from __future__ import annotations

from typing import Callable, Optional

from pairpref import logs

# report(message, fraction_done in [0, 1])
ProgressObserver = Callable[[str, float], None]


def overall_fraction(phase_index: int, phase_fraction: float, total_phases: int) -> float:
    """(phaseIndex + phaseFraction) / totalPhases, clipped to [0, 1]."""
    if total_phases <= 0:
        return 1.0
    frac = (phase_index + min(max(phase_fraction, 0.0), 1.0)) / total_phases
    return min(max(frac, 0.0), 1.0)


class ProgressReporter:
    """
    最轻量进度系统（不依赖 Rich/TQDM）

    - 日志输出
    - 可选 observer 回调：外部 UI 的唯一接口，纯观察，返回值忽略
    """

    def __init__(self, enabled: bool = True, observer: Optional[ProgressObserver] = None):
        self.enabled = enabled
        self.observer = observer
        self.last_fraction = 0.0

    def update(self, task: str, current: int, total: int, unit: str = ""):
        if not self.enabled:
            return
        logs.debug(f"[Progress] {task}: {current}/{total} {unit}")

    def report(self, message: str, fraction: float):
        self.last_fraction = fraction
        if not self.enabled:
            return
        logs.debug(f"[Progress] {fraction:6.1%} {message}")
        if self.observer is not None:
            self.observer(message, fraction)
