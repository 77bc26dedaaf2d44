"""
异步调用的超时 + 取消组合

每个上游请求都有自己的超时；调用方还可以传入一个 asyncio.Event 作为取消信号，
两者任一触发都会中止正在进行的请求。
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, TypeVar

from app.core.errors import RequestCancelled

T = TypeVar("T")


async def run_with_deadline(
    aw: Awaitable[T],
    timeout: Optional[float],
    cancel: Optional[asyncio.Event] = None,
) -> T:
    """
    在 timeout 秒内等待 aw 完成

    - 超时：取消 aw，抛 asyncio.TimeoutError
    - cancel 被 set：取消 aw，抛 RequestCancelled
    - aw 自己抛出的异常原样向上传播
    """
    if cancel is not None and cancel.is_set():
        # 协程对象没有被 await 过，关掉避免 "never awaited" 警告
        if asyncio.iscoroutine(aw):
            aw.close()
        raise RequestCancelled("请求在发起前已被取消")

    task = asyncio.ensure_future(aw)
    waiters = {task}
    cancel_waiter = None
    if cancel is not None:
        cancel_waiter = asyncio.ensure_future(cancel.wait())
        waiters.add(cancel_waiter)

    try:
        done, _ = await asyncio.wait(
            waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
        )
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        if cancel_waiter is not None:
            cancel_waiter.cancel()

    # 同时完成时以请求结果为准
    if task in done:
        return task.result()

    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass

    if cancel is not None and cancel.is_set():
        raise RequestCancelled("请求已被调用方取消")
    raise asyncio.TimeoutError(f"请求超时（{timeout}s）")
