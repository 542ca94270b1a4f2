import asyncio
from dataclasses import dataclass
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from autoplaylists.config import (
    DEBUG,
    ZERO_PLAYLISTS_BUTTON,
    ZERO_PLAYLISTS_MESSAGE,
    ZERO_PLAYLISTS_NOTIFICATION_ID,
    ZERO_PLAYLISTS_TITLE,
)
from autoplaylists.core import (
    DebugQuery,
    DebugQueryDisabled,
    SplaylistCache,
    SyncAction,
    SyncRequest,
    Tier,
    UnknownSessionError,
    log_info,
    log_warning,
)
from autoplaylists.data import PlaylistStore

from .collaborators import (
    AuthProvider,
    ContextProvider,
    LicenseService,
    Library,
    QueryEngine,
    Reporter,
    Surfaces,
    SyncSink,
    report_hit,
    report_warning,
)
from .query_rules import run_debug_query
from .scheduler import SyncScheduler
from .sessions import SessionRegistry

logger = logging.getLogger(__name__)


@dataclass
class SenderContext:
    """Where an inbound message came from (None for internal callers)."""

    surface_id: Optional[int] = None


Handler = Callable[[Dict[str, Any], SenderContext], Awaitable[Optional[Any]]]


class MessageRouter:
    """
    Single entry point for inbound action requests.

    `dispatch` returns the response payload, or None when the action has no
    response. Actions listed in DEFERRED_ACTIONS answer only after a
    collaborator finishes; callers bridging to a message channel must keep
    it open for them (see `expects_async_response`).

    Work that must not hold up the sender (license prefetch, the auth check
    that starts syncing, the zero-playlists notification) runs as background
    tasks; `drain` waits for them.
    """

    DEFERRED_ACTIONS = frozenset({"query", "debugQuery", "getContext"})

    def __init__(
        self,
        sessions: SessionRegistry,
        scheduler: SyncScheduler,
        sink: SyncSink,
        library: Library,
        playlists: PlaylistStore,
        query_engine: QueryEngine,
        auth: AuthProvider,
        license_service: LicenseService,
        context: ContextProvider,
        surfaces: Surfaces,
        reporter: Reporter,
        debug: bool = DEBUG,
    ):
        self.sessions = sessions
        self.scheduler = scheduler
        self.sink = sink
        self.library = library
        self.playlists = playlists
        self.query_engine = query_engine
        self.auth = auth
        self.license_service = license_service
        self.context = context
        self.surfaces = surfaces
        self.reporter = reporter
        self.debug = debug

        self._background: Set["asyncio.Task[None]"] = set()
        self._handlers: Dict[str, Handler] = {
            "forceUpdate": self._force_update,
            "setXsrf": self._set_xsrf,
            "showPageAction": self._show_page_action,
            "query": self._query,
            "debugQuery": self._debug_query,
            "getContext": self._get_context,
            "getSplaylistcache": self._get_splaylistcache,
        }

    def expects_async_response(self, action: Optional[str]) -> bool:
        return action in self.DEFERRED_ACTIONS

    async def dispatch(
        self,
        request: Dict[str, Any],
        sender: Optional[SenderContext] = None,
    ) -> Optional[Any]:
        handler = self._handlers.get(request.get("action"))
        if handler is None:
            report_warning(self.reporter, "received unknown request", {"request": request})
            return None
        return await handler(request, sender or SenderContext())

    # ---------- Background work ----------

    def _spawn(self, coro: Awaitable[None]) -> "asyncio.Task[None]":
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)
        return task

    def _on_background_done(self, task: "asyncio.Task[None]") -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background task failed", exc_info=exc)

    async def drain(self) -> None:
        """Wait until every background task, including ones they spawn, is done."""
        while True:
            pending = [task for task in self._background if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def cancel_background(self) -> None:
        for task in list(self._background):
            task.cancel()
        await self.drain()

    async def _request_update_all(self, user_id: str) -> None:
        await self.sink.request_sync(SyncRequest(user_id=user_id, action=SyncAction.UPDATE_ALL))

    # ---------- Handlers ----------

    async def _force_update(self, request: Dict[str, Any], sender: SenderContext) -> None:
        user_id = request.get("userId")
        if not user_id:
            report_warning(self.reporter, "received forceUpdate without a user id", {"request": request})
            return None
        await self._request_update_all(user_id)
        return None

    async def _set_xsrf(self, request: Dict[str, Any], sender: SenderContext) -> None:
        user_id = request.get("userId")
        log_info(f"Updating xsrf token for {user_id}.")
        if not self.sessions.update_xsrf(user_id, request.get("xt")):
            report_warning(self.reporter, "received setXsrf for unknown user", {"user_id": user_id})
            return None
        await self._request_update_all(user_id)
        return None

    async def _show_page_action(self, request: Dict[str, Any], sender: SenderContext) -> None:
        user_id = request.get("userId")
        if not user_id:
            report_warning(
                self.reporter,
                "received falsey user id from page action",
                {"user_id": user_id},
            )
            return None

        surface_id = sender.surface_id
        session_index = request.get("userIndex")
        account_id = request.get("gaiaId")

        # A surface or session index may now belong to a different user.
        self.sessions.evict_conflicting(surface_id, session_index)
        log_info(f"See user {user_id} on surface {surface_id}.")

        if not self.sessions.is_primary(account_id):
            log_warning(f"User {user_id} is not the primary user.")
            self.surfaces.show_page_action(surface_id)
            return None

        self.sessions.upsert(
            user_id=user_id,
            session_index=session_index,
            surface_id=surface_id,
            xsrf_token=request.get("xt"),
            tier=Tier.from_request(request.get("tier")),
            account_id=account_id,
        )

        self._spawn(self._prefetch_license())
        try:
            self.reporter.set_tags({"tier": request.get("tier")})
        except Exception:
            logger.exception("Telemetry reporter failed to set tier tag")
        report_hit(self.reporter, "showPageAction")

        self._spawn(self._start_syncs_if_authorized(user_id))
        self.surfaces.show_page_action(surface_id)
        self._spawn(self._notify_if_no_playlists(user_id))
        return None

    async def _prefetch_license(self) -> None:
        has_full_version = await self.license_service.has_full_version(interactive=False)
        log_info(f"Precached license status: {has_full_version}.")

    async def _start_syncs_if_authorized(self, user_id: str) -> None:
        # Never prompt from here; the page action click asks for auth.
        token = await self.auth.get_token(interactive=False, reason="userDetected")
        verified = await self.auth.verify_token(token)
        if not verified:
            log_info(f"No verified auth for {user_id} yet; syncs wait for the page action.")
            return
        self.query_engine.reset_random_cache()
        await self.scheduler.initialize(user_id)

    async def _notify_if_no_playlists(self, user_id: str) -> None:
        playlists = await self.playlists.get_playlists_for_user(user_id)
        if playlists:
            return
        self.surfaces.create_notification(
            ZERO_PLAYLISTS_NOTIFICATION_ID,
            title=ZERO_PLAYLISTS_TITLE,
            message=ZERO_PLAYLISTS_MESSAGE,
            buttons=[ZERO_PLAYLISTS_BUTTON],
        )
        report_hit(self.reporter, "zeroPlaylistsNotification")

    def _require_cache(self, user_id: Optional[str]) -> SplaylistCache:
        if user_id not in self.sessions or user_id not in self.sessions.caches:
            raise UnknownSessionError(user_id)
        return self.sessions.caches[user_id]

    async def _query(self, request: Dict[str, Any], sender: SenderContext) -> Dict[str, Any]:
        playlist = request.get("playlist") or {}
        user_id = playlist.get("userId")
        try:
            cache = self._require_cache(user_id)
        except UnknownSessionError as e:
            report_warning(self.reporter, f"query before sync setup: {e}", {"user_id": user_id})
            return {"tracks": []}

        tracks = await self.query_engine.query_tracks(user_id, cache, playlist)
        return {"tracks": tracks}

    async def _debug_query(
        self,
        request: Dict[str, Any],
        sender: SenderContext,
    ) -> Optional[Dict[str, Any]]:
        try:
            if not self.debug:
                raise DebugQueryDisabled("debugQuery is only available in debug mode.")
            query = DebugQuery.model_validate(request.get("query") or {})
            tracks = await self.query_engine.list_tracks(query.user_id)
            rows = run_debug_query(tracks, query)
        except Exception as e:
            # The sender never gets a response for a failed debug query.
            log_warning(f"debugQuery failed: {e}")
            return None
        return {"tracks": rows}

    async def _get_context(self, request: Dict[str, Any], sender: SenderContext) -> Dict[str, Any]:
        return await self.context.get()

    async def _get_splaylistcache(
        self,
        request: Dict[str, Any],
        sender: SenderContext,
    ) -> SplaylistCache:
        user_id = request.get("userId")
        cache = self.sessions.caches.get(user_id)
        if cache is None:
            # There is no way to wait for the cache; hand out an empty one.
            cache = self.library.open_splaylistcache()
            report_warning(
                self.reporter,
                "got getSplaylistcache, but cache not synced yet",
                {"request": request},
            )
        return cache
