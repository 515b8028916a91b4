"""Tests for run_cancellable (cancel event, timeout, native cancellation)."""

from __future__ import annotations

import asyncio

import pytest

from market_assistant.infrastructure.llm import (
    LLMCancelledError,
    LLMTimeoutError,
    run_cancellable,
)


async def _slow(value: str, delay: float) -> str:
    await asyncio.sleep(delay)
    return value


class TestRunCancellable:

    @pytest.mark.asyncio
    async def test_returns_result(self) -> None:
        assert await run_cancellable(_slow("done", 0.01), asyncio.Event(), timeout=1.0) == "done"

    @pytest.mark.asyncio
    async def test_no_event_no_timeout(self) -> None:
        assert await run_cancellable(_slow("done", 0.0)) == "done"

    @pytest.mark.asyncio
    async def test_inner_exception_propagates(self) -> None:
        async def boom() -> None:
            raise ValueError("bad payload")

        with pytest.raises(ValueError, match="bad payload"):
            await run_cancellable(boom(), asyncio.Event())

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        with pytest.raises(LLMTimeoutError):
            await run_cancellable(_slow("late", 1.0), timeout=0.05, label="slow call")

    @pytest.mark.asyncio
    async def test_cancel_event_stops_inner_task(self) -> None:
        started = asyncio.Event()
        finished = False

        async def work() -> None:
            nonlocal finished
            started.set()
            await asyncio.sleep(1.0)
            finished = True

        cancel = asyncio.Event()
        runner = asyncio.ensure_future(run_cancellable(work(), cancel))
        await started.wait()
        cancel.set()
        with pytest.raises(LLMCancelledError):
            await runner
        assert finished is False

    @pytest.mark.asyncio
    async def test_native_cancellation_is_not_converted(self) -> None:
        runner = asyncio.ensure_future(run_cancellable(_slow("x", 1.0), asyncio.Event()))
        await asyncio.sleep(0.01)
        runner.cancel()
        with pytest.raises(asyncio.CancelledError):
            await runner
