from abc import ABC, abstractmethod
import asyncio
import logging
import time
from typing import Awaitable, Callable, Set

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[None]]


def now_ms() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class TimerHandle(ABC):
    @abstractmethod
    def cancel(self) -> None:
        raise NotImplementedError

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        raise NotImplementedError


class Timers(ABC):
    """
    Source of one-shot and repeating timers.

    Callbacks are coroutine functions. Cancelling a handle stops future
    fires but never interrupts a callback that is already running.
    """

    @abstractmethod
    def call_later(self, delay_ms: int, callback: TimerCallback) -> TimerHandle:
        raise NotImplementedError

    @abstractmethod
    def call_repeating(self, interval_ms: int, callback: TimerCallback) -> TimerHandle:
        raise NotImplementedError


class _TaskHandle(TimerHandle):
    def __init__(self, task: "asyncio.Task[None]"):
        self._task = task
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True
        self._task.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioTimers(Timers):
    """Timers running on the current asyncio event loop."""

    def __init__(self) -> None:
        self._inflight: Set["asyncio.Task[None]"] = set()

    def _spawn(self, coro: Awaitable[None]) -> "asyncio.Task[None]":
        task = asyncio.ensure_future(coro)
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def _fire(self, callback: TimerCallback) -> None:
        try:
            await callback()
        except Exception:
            logger.exception("Timer callback %r failed", callback)

    async def _later(self, delay_ms: int, callback: TimerCallback) -> None:
        await asyncio.sleep(max(delay_ms, 0) / 1000)
        self._spawn(self._fire(callback))

    async def _repeat(self, interval_ms: int, callback: TimerCallback) -> None:
        while True:
            await asyncio.sleep(interval_ms / 1000)
            self._spawn(self._fire(callback))

    def call_later(self, delay_ms: int, callback: TimerCallback) -> TimerHandle:
        return _TaskHandle(self._spawn(self._later(delay_ms, callback)))

    def call_repeating(self, interval_ms: int, callback: TimerCallback) -> TimerHandle:
        if interval_ms <= 0:
            raise ValueError(f"Repeating timer needs a positive interval, got {interval_ms}.")
        return _TaskHandle(self._spawn(self._repeat(interval_ms, callback)))
