#!filepath: pairpref/observability/timer.py
import time
from typing import Dict, List


class Timer:
    """
    perf_counter 计时器（可重入）

    - start(name) / end(name) 成对使用，同名嵌套按栈处理
    - end() 未匹配 start() → 0.0
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._starts: Dict[str, List[float]] = {}

    def start(self, name: str) -> None:
        if not self.enabled:
            return
        self._starts.setdefault(name, []).append(time.perf_counter())

    def end(self, name: str) -> float:
        if not self.enabled:
            return 0.0
        stack = self._starts.get(name)
        if not stack:
            return 0.0
        began = stack.pop()
        if not stack:
            del self._starts[name]
        return time.perf_counter() - began

    def running(self, name: str) -> bool:
        return bool(self._starts.get(name))
