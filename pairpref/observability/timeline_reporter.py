#!filepath: pairpref/observability/timeline_reporter.py
from typing import Dict
from pairpref import logs


class TimelineReporter:
    """
    Analysis timeline 报告：phase → 耗时秒数
    """

    def __init__(self, timeline: Dict[str, float], run_id: str):
        self.timeline = timeline
        self.run_id = run_id

    def lines(self) -> list[str]:
        out = [f"[Timeline] ===== Analysis timeline for {self.run_id} ====="]
        total = 0.0
        for name, sec in self.timeline.items():
            out.append(f"[Timeline] {str(name):<30} {sec:>8.3f}s")
            total += sec
        out.append(f"[Timeline] Total{'':<27} {total:>8.3f}s")
        return out

    def print(self):
        for line in self.lines():
            logs.info(line)
