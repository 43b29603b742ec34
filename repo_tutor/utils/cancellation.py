"""
Cooperative cancellation for outbound calls.

A CancellationToken is shared between the caller and every in-flight
network call. `race_with_deadline` is the single place where a call is raced
against both its own timer and the token, so the two outcomes stay distinct:
the timer firing is a timeout, the token firing is a cancellation.
"""

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OperationCancelled(Exception):
    """The caller fired the cancellation token."""


class OperationTimedOut(Exception):
    """The per-call timer expired before the call finished."""


class CancellationToken:
    """One-shot cancellation signal backed by an asyncio.Event."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


async def race_with_deadline(
    awaitable: Awaitable[T],
    *,
    timeout: float,
    cancellation: CancellationToken | None = None,
) -> T:
    """
    Await `awaitable`, aborting it when `timeout` seconds pass or the token fires.

    Raises:
        OperationCancelled: token fired first (or was already fired)
        OperationTimedOut: timer expired first
        Exception: whatever the awaited call itself raised
    """
    if cancellation is not None and cancellation.cancelled:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise OperationCancelled("Operation cancelled before it started")

    call = asyncio.ensure_future(awaitable)
    waiters: set[asyncio.Future] = {call}
    cancel_waiter = None
    if cancellation is not None:
        cancel_waiter = asyncio.ensure_future(cancellation.wait())
        waiters.add(cancel_waiter)

    try:
        done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        call.cancel()
        raise
    finally:
        if cancel_waiter is not None:
            cancel_waiter.cancel()

    if cancellation is not None and cancellation.cancelled:
        await _abandon(call)
        raise OperationCancelled("Operation cancelled")

    if call in done:
        return call.result()

    await _abandon(call)
    raise OperationTimedOut(f"Operation timed out after {timeout:.1f}s")


async def _abandon(call: asyncio.Future) -> None:
    # Let the aborted call unwind (close sockets, streams) before returning.
    if call.done():
        if not call.cancelled() and call.exception() is not None:
            logger.debug(f"   Abandoned call had already failed: {call.exception()!r}")
        return
    call.cancel()
    await asyncio.wait({call})
