import asyncio
import contextlib
from dataclasses import dataclass
from enum import Enum
import logging
from typing import Callable, Optional

from autoplaylists.config import MIN_SYNC_MS
from autoplaylists.core import StorageChange, SyncAction, SyncRequest, log_info, log_step
from autoplaylists.data import SettingsStore, Subscription

from .collaborators import Library, SyncSink
from .sessions import SessionRegistry
from .timers import AsyncioTimers, TimerHandle, Timers, now_ms

logger = logging.getLogger(__name__)


class SchedulePhase(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    RUNNING = "running"
    RUNNING_PAUSED = "running_paused"


@dataclass
class ScheduleState:
    """
    Process-wide periodic sync state.

    `started` is a one-way latch. `timer_handle` is the single live timer:
    the deferred first-sync wait while pending, the repeating sync timer
    while running with a valid interval, None otherwise.
    """

    started: bool = False
    phase: SchedulePhase = SchedulePhase.IDLE
    last_sync_at: Optional[int] = None
    interval_ms: Optional[int] = None
    deadline: Optional[int] = None
    timer_handle: Optional[TimerHandle] = None


class SyncScheduler:
    """
    Decides when periodic "update-all" syncs run.

    The next sync is computed from the last persisted periodic sync plus the
    interval, so restarting the process does not reset the schedule:

      now >= last + interval: sync now, then every interval.
      now <  last + interval: wait until last + interval, then start.

    Interval changes arrive on a settings subscription consumed by a single
    watcher task, which is the only place the running timer is replaced.
    """

    def __init__(
        self,
        settings: SettingsStore,
        sessions: SessionRegistry,
        sink: SyncSink,
        library: Library,
        timers: Optional[Timers] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.settings = settings
        self.sessions = sessions
        self.sink = sink
        self.library = library
        self.timers = timers or AsyncioTimers()
        self.clock = clock

        self.state = ScheduleState()
        self._initializing = False
        self._changes: Optional[Subscription] = None
        self._watcher: Optional["asyncio.Task[None]"] = None

    # ---------- Timer bookkeeping ----------

    def _cancel_timer(self) -> None:
        if self.state.timer_handle is not None:
            self.state.timer_handle.cancel()
            self.state.timer_handle = None

    def _install_timer(self, handle: TimerHandle) -> None:
        self._cancel_timer()
        self.state.timer_handle = handle

    # ---------- Lifecycle ----------

    async def initialize(self, user_id: str) -> None:
        """
        Fill the caches for `user_id`, then set up the periodic schedule.

        Only the first call in a process does anything; later calls are
        logged and ignored.
        """
        if self.state.started or self._initializing:
            log_info("Request to init syncs, but they're already started.")
            return

        self._initializing = True
        try:
            log_step(f"Initializing library and caches for {user_id}...")
            await self.library.init_library(user_id)
            cache = self.library.open_splaylistcache()
            self.sessions.caches[user_id] = cache
            await self.library.sync_splaylistcache(user_id, cache)
        except Exception:
            self._initializing = False
            raise

        # The caches are ready; only now may periodic ticks start.
        last_sync_at = await self.settings.get_last_psync()
        interval_ms = await self.settings.get_sync_ms()
        self.state.last_sync_at = last_sync_at
        self.state.interval_ms = interval_ms
        log_info(
            f"Last periodic sync at {last_sync_at}; "
            f"interval {interval_ms}ms ({interval_ms / 1000 / 60:.1f}m)."
        )

        next_expected = last_sync_at + interval_ms
        now = self.clock()
        if next_expected <= now:
            log_info("Sync overdue; starting periodic syncs now.")
            await self.enter_running()
            return

        delay_ms = next_expected - now
        log_info(f"Delaying syncs for ~{round(delay_ms / 1000 / 60)} minutes.")
        self.state.phase = SchedulePhase.PENDING
        self.state.deadline = next_expected
        self._install_timer(self.timers.call_later(delay_ms, self._on_deadline))
        self._watch_interval()

    async def _on_deadline(self) -> None:
        if self.state.phase is not SchedulePhase.PENDING:
            return
        await self.enter_running()

    async def enter_running(self) -> None:
        if self.state.started:
            log_info("Request to start periodic syncs, but they're already started.")
            return

        self.state.started = True
        self.state.deadline = None
        self._cancel_timer()

        interval_ms = await self.settings.get_sync_ms()
        self.state.interval_ms = interval_ms
        self._watch_interval()

        # No syncing at a zero period or more often than once a minute.
        if interval_ms < MIN_SYNC_MS:
            self.state.phase = SchedulePhase.RUNNING_PAUSED
            log_info(f"Sync interval {interval_ms}ms is below the minimum; periodic syncs off.")
            return

        self.state.phase = SchedulePhase.RUNNING
        self._install_timer(self.timers.call_repeating(interval_ms, self.tick))
        await self.tick()

    async def stop(self) -> None:
        self._cancel_timer()
        if self._changes is not None:
            self._changes.close()
            self._changes = None
        if self._watcher is not None:
            self._watcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._watcher
            self._watcher = None

    async def reset(self) -> None:
        """Stop everything and return to a fresh idle state."""
        await self.stop()
        self.state = ScheduleState()
        self._initializing = False

    # ---------- Interval changes ----------

    def _watch_interval(self) -> None:
        if self._watcher is not None:
            return
        self._changes = self.settings.subscribe_sync_ms()
        self._watcher = asyncio.ensure_future(self._consume_interval_changes(self._changes))

    async def _consume_interval_changes(self, changes: Subscription) -> None:
        async for change in changes:
            try:
                await self.on_interval_change(change)
            except Exception:
                logger.exception("Failed to apply sync interval change %r", change)

    async def on_interval_change(self, change: StorageChange) -> None:
        old_ms = change.old_value
        new_ms = change.new_value

        if self.state.phase is SchedulePhase.PENDING and not self.state.started:
            # Stop waiting and catch up now instead of moving the deadline.
            log_info("Sync period updated during delay; syncing now.")
            await self.enter_running()
            return

        if not self.state.started:
            return

        log_info(f"Sync interval changing to {new_ms}.")
        self._cancel_timer()
        self.state.interval_ms = new_ms

        if new_ms is None or new_ms < MIN_SYNC_MS:
            self.state.phase = SchedulePhase.RUNNING_PAUSED
            return

        self.state.phase = SchedulePhase.RUNNING
        self._install_timer(self.timers.call_repeating(new_ms, self.tick))
        if old_ms == 0:
            log_info("Syncs turning back on; syncing now.")
            await self.tick()

    # ---------- Ticks ----------

    async def tick(self) -> None:
        """Record the periodic sync time, then ask for a full sync of every session."""
        now = self.clock()
        await self.settings.set_last_psync(now)
        self.state.last_sync_at = now
        log_info(f"Set last periodic sync to {now}.")

        for user_id in self.sessions.user_ids():
            await self.sink.request_sync(
                SyncRequest(user_id=user_id, action=SyncAction.UPDATE_ALL)
            )
