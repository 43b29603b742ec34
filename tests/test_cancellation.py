"""
Tests for the cancellation token and the deadline race
"""

import asyncio

import pytest

from repo_tutor.utils.cancellation import (
    CancellationToken,
    OperationCancelled,
    OperationTimedOut,
    race_with_deadline,
)


class TestRaceWithDeadline:
    """Test cases for race_with_deadline"""

    @pytest.mark.asyncio
    async def test_returns_result_when_call_finishes_first(self):
        async def call():
            return "done"

        assert await race_with_deadline(call(), timeout=1.0) == "done"

    @pytest.mark.asyncio
    async def test_timeout_is_reported_as_timeout(self):
        finished = False

        async def slow():
            nonlocal finished
            await asyncio.sleep(10)
            finished = True

        with pytest.raises(OperationTimedOut):
            await race_with_deadline(slow(), timeout=0.01)
        assert finished is False

    @pytest.mark.asyncio
    async def test_token_fired_mid_call_is_reported_as_cancelled(self):
        token = CancellationToken()
        started = asyncio.Event()

        async def slow():
            started.set()
            await asyncio.sleep(10)

        async def cancel_soon():
            await started.wait()
            token.cancel()

        canceller = asyncio.create_task(cancel_soon())
        with pytest.raises(OperationCancelled):
            await race_with_deadline(slow(), timeout=5.0, cancellation=token)
        await canceller

    @pytest.mark.asyncio
    async def test_already_cancelled_token_never_starts_the_call(self):
        token = CancellationToken()
        token.cancel()
        started = False

        async def call():
            nonlocal started
            started = True

        with pytest.raises(OperationCancelled):
            await race_with_deadline(call(), timeout=1.0, cancellation=token)
        assert started is False

    @pytest.mark.asyncio
    async def test_call_exception_propagates(self):
        async def broken():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await race_with_deadline(broken(), timeout=1.0, cancellation=CancellationToken())


class TestCancellationToken:
    """Test cases for CancellationToken"""

    @pytest.mark.asyncio
    async def test_cancel_is_idempotent(self):
        token = CancellationToken()
        assert token.cancelled is False
        token.cancel()
        token.cancel()
        assert token.cancelled is True
        await asyncio.wait_for(token.wait(), timeout=0.1)
