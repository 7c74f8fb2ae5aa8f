from __future__ import annotations

from typing import Iterator, Tuple

from pairpref.observability.instrumentation import (
    Instrumentation,
    NoOpInstrumentation,
)

# (message, phase_fraction in [0, 1])
StepProgress = Tuple[str, float]


class PipelineStep:
    """
    Pipeline Step 基类

    职责：
      1. 一个 phase 的 orchestration（循环 / 调度）
      2. 以 generator 形式把控制权交还给 pipeline（每个 bounded unit 一次）

    设计铁律：
      - Step 只读写 ctx，不持有跨 run 的状态
      - iter_run() 每个 yield 是一个安全的暂停 / 取消点
      - Step 行为不依赖 inst 是否存在
    """

    stage: str = ""

    def __init__(self, inst: Instrumentation | None = None):
        self.inst: Instrumentation | NoOpInstrumentation = (
            inst if inst is not None else NoOpInstrumentation()
        )

    @property
    def step_name(self) -> str:
        return self.__class__.__name__

    def timed(self):
        """Step 级时间语义边界（父级 scope，不进入 timeline）"""
        return self.inst.timer(self.step_name, record=False)

    # --------------------------------------------------
    # Contract
    # --------------------------------------------------
    def iter_run(self, ctx) -> Iterator[StepProgress]:
        """
        子类必须实现：读取 ctx，写回结果，按 unit yield 进度。
        """
        raise NotImplementedError

    def run(self, ctx):
        for _ in self.iter_run(ctx):
            pass
        return ctx
