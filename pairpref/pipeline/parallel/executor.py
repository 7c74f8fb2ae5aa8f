# pairpref/pipeline/parallel/executor.py
from __future__ import annotations

import os
from concurrent.futures import ProcessPoolExecutor
from typing import Any, Callable, Iterable

from pairpref.pipeline.parallel.types import ParallelKind
from pairpref import logs


class ParallelExecutor:
    """
    ParallelExecutor（MVP）

    - 统一的 ProcessPoolExecutor 封装
    - 每个 item 自带全部状态（trial / bootstrap round 之间无共享可变状态）
    - 结果顺序 == items 顺序（选择 best / 复现实验依赖这一点）
    """

    @staticmethod
    def run(
            *,
            kind: ParallelKind,
            items: Iterable[Any],
            handler: Callable[[Any], Any],
            max_workers: int | None = None,
    ) -> list[Any]:
        items = list(items)
        if not items:
            logs.info("[ParallelExecutor] no items to process")
            return []

        logs.info(
            f"[ParallelExecutor] start "
            f"kind={kind.value} total={len(items)}"
        )

        workers = ParallelExecutor._resolve_workers(items, max_workers)

        if workers == 1:
            return ParallelExecutor._run_sequential(items, handler)
        return ParallelExecutor._run_parallel(items, handler, workers)

    # ---------------- internal ----------------

    @staticmethod
    def _resolve_workers(items: list, max_workers: int | None) -> int:
        cpu = os.cpu_count() or 1
        if max_workers is None:
            return max(1, min(cpu, len(items)))
        return max(1, min(max_workers, len(items)))

    @staticmethod
    def _run_sequential(
            items: list,
            handler: Callable[[Any], Any],
    ) -> list:
        return [handler(item) for item in items]

    @staticmethod
    def _run_parallel(
            items: list,
            handler: Callable[[Any], Any],
            workers: int,
    ) -> list:
        logs.info(
            f"[ParallelExecutor] run parallel | workers={workers}"
        )

        # handler 必须是模块级函数（可 pickle）
        with ProcessPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(handler, items))
