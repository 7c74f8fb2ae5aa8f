# tests/pipeline/test_scheduler.py
from __future__ import annotations

import asyncio

import pytest

from pairpref.pipeline.scheduler import CancelToken, astep, drain
from pairpref.pipeline.step import PipelineStep
from pairpref.utils.errors import AnalysisCancelled


class CountingStep(PipelineStep):
    stage = "count"

    def iter_run(self, ctx):
        for i in range(3):
            ctx.append(i)
            yield f"unit {i}", (i + 1) / 3


def test_cancel_token():
    token = CancelToken()
    token.check()
    assert not token.cancelled

    token.cancel("stop")
    assert token.cancelled
    with pytest.raises(AnalysisCancelled, match="stop"):
        token.check()


def test_drain_counts_events():
    assert drain(iter(range(4))) == 4


def test_step_run_drains_iter_run():
    ctx = []
    assert CountingStep().run(ctx) == [0, 1, 2]


def test_step_name_and_stage():
    step = CountingStep()
    assert step.step_name == "CountingStep"
    assert step.stage == "count"


def test_astep_interleaves_with_other_tasks():
    order = []

    async def producer():
        async for msg, _ in astep(CountingStep().iter_run([])):
            order.append(msg)

    async def other():
        await asyncio.sleep(0)
        order.append("other")

    async def main():
        await asyncio.gather(producer(), other())

    asyncio.run(main())

    assert "other" in order
    assert order.index("other") < len(order) - 1
