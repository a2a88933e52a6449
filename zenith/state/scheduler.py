from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)


class CoalescingScheduler:
    """Debounce a coroutine action on the running event loop.

    ``schedule`` replaces any pending timer, so a burst of calls results in a
    single dispatch carrying the last payload once ``delay`` seconds pass
    without a new call. Dispatches hold a lock, so one write finishes before
    the next starts.
    """

    def __init__(self, delay: float, action: Callable[[Any], Awaitable[None]]):
        self.delay = max(0.0, float(delay))
        self._action = action
        self._handle: Optional[asyncio.TimerHandle] = None
        self._payload: Any = None
        self._lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, payload: Any) -> None:
        loop = asyncio.get_running_loop()
        self.cancel()
        self._payload = payload
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._payload = None

    async def flush(self) -> None:
        if self._handle is None:
            await self.join()
            return
        payload = self._payload
        self.cancel()
        await self._dispatch(payload)
        await self.join()

    async def join(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _fire(self) -> None:
        payload = self._payload
        self._handle = None
        self._payload = None
        task = asyncio.get_running_loop().create_task(self._dispatch(payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _dispatch(self, payload: Any) -> None:
        async with self._lock:
            try:
                await self._action(payload)
            except Exception:
                logger.exception("Scheduled action failed")
