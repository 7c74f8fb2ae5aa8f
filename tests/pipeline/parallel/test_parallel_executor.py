# tests/pipeline/parallel/test_parallel_executor.py
from __future__ import annotations

import pytest

from pairpref.pipeline.parallel.executor import ParallelExecutor
from pairpref.pipeline.parallel.types import ParallelKind


def square(x):
    return x * x


def fail_on_three(x):
    if x == 3:
        raise ValueError("bad item")
    return x


def test_run_with_empty_items_returns_empty():
    assert ParallelExecutor.run(kind=ParallelKind.TRIAL, items=[], handler=square) == []


def test_run_sequential_order_preserved():
    out = ParallelExecutor.run(
        kind=ParallelKind.TRIAL, items=[3, 1, 2], handler=square, max_workers=1
    )
    assert out == [9, 1, 4]


def test_run_parallel_order_preserved():
    out = ParallelExecutor.run(
        kind=ParallelKind.BOOTSTRAP, items=list(range(8)), handler=square, max_workers=3
    )
    assert out == [i * i for i in range(8)]


@pytest.mark.parametrize(
    "n_items,max_workers,expected",
    [(5, 1, 1), (5, 3, 3), (2, 8, 2), (4, 0, 1)],
)
def test_resolve_workers(n_items, max_workers, expected):
    assert ParallelExecutor._resolve_workers(list(range(n_items)), max_workers) == expected


def test_handler_error_propagates():
    with pytest.raises(ValueError):
        ParallelExecutor.run(
            kind=ParallelKind.TRIAL, items=[1, 2, 3], handler=fail_on_three, max_workers=1
        )
