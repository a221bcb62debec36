import asyncio

import pytest

from research_engine.orchestrator.deadline import DeadlineExceeded, DeadlineTask, run_with_deadline


def test_fast_coroutine_returns_its_value():
    async def quick():
        return 42

    assert asyncio.run(run_with_deadline(quick(), 1.0, "quick")) == 42


def test_slow_coroutine_is_cancelled():
    cancelled = []

    async def slow():
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            cancelled.append(True)
            raise

    async def run():
        with pytest.raises(DeadlineExceeded) as exc:
            await run_with_deadline(slow(), 0.05, "slow")
        await asyncio.sleep(0.01)
        return exc.value

    err = asyncio.run(run())
    assert err.label == "slow"
    assert cancelled == [True]


def test_errors_propagate_unchanged():
    async def broken():
        raise KeyError("missing")

    with pytest.raises(KeyError):
        asyncio.run(run_with_deadline(broken(), 1.0))


def test_no_deadline_awaits_directly():
    async def quick():
        return "done"

    assert asyncio.run(run_with_deadline(quick(), None)) == "done"


def test_remaining_counts_down():
    async def run():
        task = DeadlineTask(asyncio.sleep(0.01), 10.0, "sleep")
        assert 9.0 < task.remaining() <= 10.0
        await task.result()

    asyncio.run(run())
