"""asyncio-backed periodic timer."""

from __future__ import annotations

import asyncio
import logging

from .interface import ClockSource, TimerHandler

logger = logging.getLogger(__name__)


class AsyncioClock(ClockSource):
    """ClockSource that runs the handler from a background asyncio task."""

    def __init__(self, name: str = "refresh-timer") -> None:
        self._name = name
        self._task: asyncio.Task | None = None

    async def start(self, interval: float, handler: TimerHandler) -> None:
        self._task = asyncio.create_task(self._run_loop(interval, handler), name=self._name)
        logger.info("Timer %s started: %.1fs interval", self._name, interval)

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Timer %s stopped", self._name)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run_loop(self, interval: float, handler: TimerHandler) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await handler()
            except Exception:
                logger.exception("Timer %s handler failed", self._name)
