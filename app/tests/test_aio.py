from __future__ import annotations

import asyncio

import pytest

from app.core.errors import RequestCancelled
from app.utils.aio import run_with_deadline


async def slow(value, delay):
    await asyncio.sleep(delay)
    return value


@pytest.mark.asyncio
async def test_returns_result_in_time():
    assert await run_with_deadline(slow("ok", 0), timeout=1) == "ok"


@pytest.mark.asyncio
async def test_timeout_cancels_task():
    started = asyncio.Event()
    cancelled = asyncio.Event()

    async def hang():
        started.set()
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    with pytest.raises(asyncio.TimeoutError):
        await run_with_deadline(hang(), timeout=0.01)

    assert started.is_set()
    assert cancelled.is_set()


@pytest.mark.asyncio
async def test_cancel_signal_aborts_inflight_call():
    cancel = asyncio.Event()
    asyncio.get_running_loop().call_later(0.01, cancel.set)

    with pytest.raises(RequestCancelled):
        await run_with_deadline(slow("late", 10), timeout=5, cancel=cancel)


@pytest.mark.asyncio
async def test_already_cancelled_never_starts():
    cancel = asyncio.Event()
    cancel.set()
    calls = []

    async def work():
        calls.append(1)

    with pytest.raises(RequestCancelled):
        await run_with_deadline(work(), timeout=1, cancel=cancel)

    assert calls == []


@pytest.mark.asyncio
async def test_errors_from_awaitable_propagate():
    async def boom():
        raise ValueError("bad")

    with pytest.raises(ValueError, match="bad"):
        await run_with_deadline(boom(), timeout=1, cancel=asyncio.Event())
