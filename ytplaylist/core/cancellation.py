"""
Cooperative cancellation for a sync run.

A single CancellationScope is created per run and handed to the fetch
task, every download worker, and the MusicBrainz client. Nothing is
interrupted mid-call: jobs check the scope when they enter a new state,
and backoff sleeps wake up early when the scope is cancelled.

Usage:
    scope = CancellationScope()
    loop.add_signal_handler(signal.SIGINT, scope.cancel)

    scope.raise_if_cancelled()       # at a state transition
    await scope.sleep(1.0)           # returns early on cancel
"""

import asyncio

from ytplaylist.core.exceptions import JobCancelled


class CancellationScope:
    """Run-wide cancellation flag with an awaitable signal."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "Cancelled by user") -> None:
        """Request cancellation. Idempotent; the first reason wins."""
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise JobCancelled(self.reason or "Cancelled")

    async def wait(self) -> None:
        await self._event.wait()

    async def sleep(self, delay: float) -> None:
        """
        Sleep for `delay` seconds unless cancelled first.

        Raises:
            JobCancelled: if the scope is (or becomes) cancelled.
        """
        self.raise_if_cancelled()
        if delay > 0:
            try:
                await asyncio.wait_for(self._event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                return
        self.raise_if_cancelled()
