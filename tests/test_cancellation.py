"""Tests for cooperative cancellation"""

import asyncio
import time

import pytest

from ytplaylist.core.cancellation import CancellationScope
from ytplaylist.core.exceptions import JobCancelled, YtPlaylistError


class TestCancellationScope:
    """Test the run-wide cancellation flag"""

    def test_initial_state(self):
        scope = CancellationScope()
        assert not scope.cancelled
        scope.raise_if_cancelled()

    def test_cancel_is_idempotent(self):
        scope = CancellationScope()
        scope.cancel("first")
        scope.cancel("second")
        assert scope.cancelled
        assert scope.reason == "first"

    def test_raise_if_cancelled(self):
        scope = CancellationScope()
        scope.cancel()
        with pytest.raises(JobCancelled):
            scope.raise_if_cancelled()

    def test_cancellation_is_not_an_error(self):
        assert not issubclass(JobCancelled, YtPlaylistError)

    @pytest.mark.asyncio
    async def test_sleep_completes(self):
        scope = CancellationScope()
        await scope.sleep(0.01)

    @pytest.mark.asyncio
    async def test_sleep_wakes_on_cancel(self):
        scope = CancellationScope()
        loop = asyncio.get_running_loop()
        loop.call_later(0.05, scope.cancel)
        start = time.monotonic()

        with pytest.raises(JobCancelled):
            await scope.sleep(10)

        assert time.monotonic() - start < 5

    @pytest.mark.asyncio
    async def test_sleep_when_already_cancelled(self):
        scope = CancellationScope()
        scope.cancel()
        with pytest.raises(JobCancelled):
            await scope.sleep(0)
