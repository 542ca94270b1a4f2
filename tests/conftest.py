import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from autoplaylists.core import SplaylistCache
from autoplaylists.data import PlaylistStore, SettingsStore
from autoplaylists.sync import (
    AuthProvider,
    ContextProvider,
    IdentityProvider,
    Library,
    LicenseService,
    MemorySyncSink,
    QueryEngine,
    Reporter,
    SessionRegistry,
    Surfaces,
    SyncScheduler,
    TimerHandle,
    Timers,
)

PRIMARY = "gaia-primary"
NOW = 1_700_000_000_000


async def settle(rounds: int = 20) -> None:
    """Let queued tasks (watchers, routers) run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeClock:
    def __init__(self, now: int = NOW):
        self.now = now

    def __call__(self) -> int:
        return self.now


class FakeHandle(TimerHandle):
    def __init__(self, kind: str, delay_ms: int, callback):
        self.kind = kind
        self.delay_ms = delay_ms
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class FakeTimers(Timers):
    """Timers that only fire when a test says so."""

    def __init__(self) -> None:
        self.handles: List[FakeHandle] = []

    def call_later(self, delay_ms, callback) -> FakeHandle:
        handle = FakeHandle("once", delay_ms, callback)
        self.handles.append(handle)
        return handle

    def call_repeating(self, interval_ms, callback) -> FakeHandle:
        handle = FakeHandle("repeat", interval_ms, callback)
        self.handles.append(handle)
        return handle

    def live(self) -> List[FakeHandle]:
        return [h for h in self.handles if not h.cancelled]

    async def fire(self, handle: FakeHandle) -> None:
        assert not handle.cancelled, "fired a cancelled timer"
        await handle.callback()


class RecordingLibrary(Library):
    def __init__(self) -> None:
        self.events: List[str] = []
        self.fail_next = False

    async def init_library(self, user_id: str) -> None:
        self.events.append(f"init:{user_id}")
        await asyncio.sleep(0)
        if self.fail_next:
            self.fail_next = False
            raise RuntimeError("library warm-up failed")

    async def sync_splaylistcache(self, user_id: str, cache: SplaylistCache) -> None:
        self.events.append(f"splaylistcache:{user_id}")
        await asyncio.sleep(0)
        cache.entries["thumbsUp"] = {"title": "Thumbs Up"}
        cache.synced_at = NOW


class FakeAuth(AuthProvider):
    def __init__(self, verified: bool = True, prompt_token: Optional[str] = "prompted"):
        self.verified = verified
        self.prompt_token = prompt_token
        self.calls: List[Dict[str, Any]] = []

    async def get_token(self, interactive: bool, reason: str) -> Optional[str]:
        self.calls.append({"interactive": interactive, "reason": reason})
        if interactive:
            return self.prompt_token
        return "cached-token" if self.verified else None

    async def verify_token(self, token: Optional[str]) -> Optional[str]:
        if self.verified and token:
            return token
        return None


class FakeLicense(LicenseService):
    def __init__(self) -> None:
        self.calls: List[bool] = []

    async def has_full_version(self, interactive: bool) -> bool:
        self.calls.append(interactive)
        return True


class FakeContext(ContextProvider):
    async def get(self) -> Dict[str, Any]:
        return {"extVersion": "test", "tier": "free"}


class FakeIdentity(IdentityProvider):
    def __init__(self, account_id: Optional[str] = PRIMARY):
        self.account_id = account_id

    async def get_primary_account_id(self) -> Optional[str]:
        return self.account_id


class FakeQueryEngine(QueryEngine):
    def __init__(self, tracks: Optional[List[Dict[str, Any]]] = None):
        self.tracks = tracks or []
        self.queries: List[Dict[str, Any]] = []
        self.random_resets = 0

    async def query_tracks(self, user_id, cache, playlist):
        self.queries.append({"user_id": user_id, "cache": cache, "playlist": playlist})
        return self.tracks[:1]

    async def list_tracks(self, user_id):
        return list(self.tracks)

    def reset_random_cache(self) -> None:
        self.random_resets += 1


class RecordingSurfaces(Surfaces):
    def __init__(self) -> None:
        self.page_actions: List[int] = []
        self.pages: List[Dict[str, Any]] = []
        self.urls: List[str] = []
        self.notifications: List[str] = []
        self.cleared: List[str] = []

    def show_page_action(self, surface_id):
        self.page_actions.append(surface_id)

    def open_page(self, page, query=None):
        self.pages.append({"page": page, "query": query})

    def open_url(self, url):
        self.urls.append(url)

    def create_notification(self, notification_id, title, message, buttons=None):
        self.notifications.append(notification_id)

    def clear_notification(self, notification_id):
        self.cleared.append(notification_id)


class RecordingReporter(Reporter):
    def __init__(self) -> None:
        self.messages: List[Dict[str, Any]] = []
        self.hits: List[str] = []
        self.tags: Dict[str, Any] = {}

    def capture_message(self, message, level="warning", extra=None):
        self.messages.append({"message": message, "level": level, "extra": extra})

    def report_hit(self, name):
        self.hits.append(name)

    def set_tags(self, tags):
        self.tags.update(tags)

    def warnings(self) -> List[str]:
        return [m["message"] for m in self.messages if m["level"] == "warning"]


@pytest.fixture
def settings(tmp_path: Path) -> SettingsStore:
    return SettingsStore(str(tmp_path / "settings.json"))


@pytest.fixture
def playlists(tmp_path: Path) -> PlaylistStore:
    return PlaylistStore(str(tmp_path / "playlists.json"))


@pytest.fixture
def sink() -> MemorySyncSink:
    return MemorySyncSink()


@pytest.fixture
def sessions() -> SessionRegistry:
    return SessionRegistry(primary_account_id=PRIMARY)


@pytest.fixture
def timers() -> FakeTimers:
    return FakeTimers()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def library() -> RecordingLibrary:
    return RecordingLibrary()


@pytest.fixture
def scheduler(settings, sessions, sink, library, timers, clock) -> SyncScheduler:
    return SyncScheduler(
        settings=settings,
        sessions=sessions,
        sink=sink,
        library=library,
        timers=timers,
        clock=clock,
    )
