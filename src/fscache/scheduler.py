"""Keyed one-shot timers for deferred expiry work.

:class:`ExpiryScheduler` wraps :meth:`asyncio.AbstractEventLoop.call_later`
with a key per pending timer. Scheduling an existing key replaces the
earlier timer, and :meth:`~ExpiryScheduler.cancel` lets an explicit delete
drop the wake-up it no longer needs. When a timer fires, its coroutine runs
as a background task; failures are logged, never raised.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Optional

from fscache.output import error

ExpiryCallback = Callable[[], Awaitable[object]]


class ExpiryScheduler:
    """Registry of pending expiry timers on the running event loop.

    All methods must be called from the event loop thread.
    """

    def __init__(self) -> None:
        self._handles: dict[str, asyncio.TimerHandle] = {}
        self._tasks: set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._handles)

    def __contains__(self, key: object) -> bool:
        return key in self._handles

    def schedule(self, key: str, delay: float, callback: ExpiryCallback) -> None:
        """Run ``callback()`` after *delay* seconds, replacing any timer under *key*.

        Args:
            key: Identity of the timer, typically a filesystem path.
            delay: Seconds to wait. Negative values fire on the next loop
                iteration.
            callback: Zero-argument coroutine function.
        """
        self.cancel(key)
        loop = asyncio.get_running_loop()
        self._handles[key] = loop.call_later(
            max(delay, 0), self._fire, key, callback
        )

    def cancel(self, key: str) -> bool:
        """Cancel the timer under *key*. Returns ``True`` if one was pending."""
        handle = self._handles.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> None:
        """Cancel every pending timer and any callback still running."""
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
        for task in list(self._tasks):
            task.cancel()

    def deadline(self, key: str) -> Optional[float]:
        """Loop time at which the timer under *key* fires, or ``None``."""
        handle = self._handles.get(key)
        return handle.when() if handle is not None else None

    async def drain(self) -> None:
        """Wait for callbacks that have already fired to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _fire(self, key: str, callback: ExpiryCallback) -> None:
        self._handles.pop(key, None)
        task = asyncio.ensure_future(callback())
        self._tasks.add(task)
        task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            error(f"Scheduled expiry failed: {exc}")
