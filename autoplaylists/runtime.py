import asyncio
import contextlib
import logging
from typing import Awaitable, Callable, Optional, Set

from autoplaylists import __version__
from autoplaylists.config import (
    DEBUG,
    MULTI_USER_PAGE,
    PLAYLISTS_PAGE,
    USAGE_HELP_URL,
    WELCOME_DELAY_SECONDS,
    WELCOME_PAGE,
    ZERO_PLAYLISTS_NOTIFICATION_ID,
)
from autoplaylists.core import log_info, log_step
from autoplaylists.data import PlaylistStore, SettingsStore, Subscription
from autoplaylists.sync import (
    AuthProvider,
    ChangeEventRouter,
    ContextProvider,
    EmptyQueryEngine,
    EnvIdentity,
    IdentityProvider,
    Library,
    LicenseService,
    LoggingReporter,
    LoggingSurfaces,
    MessageRouter,
    NoAuth,
    NullLibrary,
    QueryEngine,
    Reporter,
    SessionRegistry,
    StaticContext,
    StaticLicense,
    Surfaces,
    SyncScheduler,
    SyncSink,
    Timers,
    build_sync_sink,
    now_ms,
    report_hit,
    report_warning,
)

logger = logging.getLogger(__name__)


class Background:
    """
    The long-lived coordinator process.

    Owns the session registry, the scheduler and both routers, and reacts to
    the UI events that are not inbound messages: page action clicks and
    notification buttons.
    """

    def __init__(
        self,
        settings: SettingsStore,
        playlists: PlaylistStore,
        sink: SyncSink,
        library: Library,
        query_engine: QueryEngine,
        auth: AuthProvider,
        license_service: LicenseService,
        context: ContextProvider,
        identity: IdentityProvider,
        surfaces: Surfaces,
        reporter: Reporter,
        timers: Optional[Timers] = None,
        clock: Callable[[], int] = now_ms,
        debug: bool = DEBUG,
        welcome_delay: float = WELCOME_DELAY_SECONDS,
    ):
        self.settings = settings
        self.playlists = playlists
        self.sink = sink
        self.auth = auth
        self.identity = identity
        self.surfaces = surfaces
        self.reporter = reporter
        self.welcome_delay = welcome_delay

        self.sessions = SessionRegistry()
        self.scheduler = SyncScheduler(
            settings=settings,
            sessions=self.sessions,
            sink=sink,
            library=library,
            timers=timers,
            clock=clock,
        )
        self.change_router = ChangeEventRouter(sink)
        self.messages = MessageRouter(
            sessions=self.sessions,
            scheduler=self.scheduler,
            sink=sink,
            library=library,
            playlists=playlists,
            query_engine=query_engine,
            auth=auth,
            license_service=license_service,
            context=context,
            surfaces=surfaces,
            reporter=reporter,
            debug=debug,
        )

        self._playlist_changes: Optional[Subscription] = None
        self._services: Set["asyncio.Task[None]"] = set()
        self._tasks: Set["asyncio.Task[None]"] = set()

    def _spawn(
        self,
        coro: Awaitable[None],
        tasks: Optional[Set["asyncio.Task[None]"]] = None,
    ) -> "asyncio.Task[None]":
        tasks = self._tasks if tasks is None else tasks
        task = asyncio.ensure_future(coro)
        tasks.add(task)
        task.add_done_callback(tasks.discard)
        return task

    async def start(self) -> None:
        log_step("Starting sync coordinator...")
        await self.settings.migrate()

        self.sessions.primary_account_id = await self.identity.get_primary_account_id()
        if self.sessions.primary_account_id is None:
            log_info("No primary account configured; sessions will not be stored.")

        self._playlist_changes = self.playlists.subscribe()
        self._spawn(self.change_router.run(self._playlist_changes), self._services)
        self._spawn(self._welcome_if_needed(), self._services)

        report_hit(self.reporter, "load")

    async def stop(self) -> None:
        await self.scheduler.stop()
        if self._playlist_changes is not None:
            self._playlist_changes.close()
            self._playlist_changes = None
        await self.messages.cancel_background()

        tasks = list(self._services | self._tasks)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _welcome_if_needed(self) -> None:
        token = await self.auth.get_token(interactive=False, reason="startup")
        if await self.auth.verify_token(token):
            return
        if await self.settings.get_should_not_welcome():
            return

        log_info("Welcoming.")
        # Give the browser time to open a window.
        await asyncio.sleep(self.welcome_delay)
        self.surfaces.open_page(WELCOME_PAGE)

    async def on_page_action_clicked(self, surface_id: int) -> None:
        self.surfaces.clear_notification(ZERO_PLAYLISTS_NOTIFICATION_ID)

        user_id = self.sessions.lookup_by_surface(surface_id)
        if not user_id:
            # Only the primary user is ever registered.
            report_warning(
                self.reporter,
                "multiuser page action click",
                {
                    "surface_id": surface_id,
                    "primary_account_id": self.sessions.primary_account_id,
                    "sessions": self.sessions.snapshot(),
                },
            )
            report_hit(self.reporter, "multiuserPageActionClick")
            self.surfaces.open_page(MULTI_USER_PAGE)
            return

        token = await self.auth.get_token(interactive=False, reason="pageAction")
        if not await self.auth.verify_token(token):
            log_info("Asking for auth.")
            token = await self.auth.get_token(interactive=True, reason="pageAction")
            if not token:
                return
            log_info(f"Got auth on prompt for {user_id}.")
            # Known limitation: this first sync can race playlist creation.
            self._spawn(self.scheduler.initialize(user_id))

        self.surfaces.open_page(
            PLAYLISTS_PAGE,
            {"userId": self.sessions.lookup_by_surface(surface_id)},
        )

    async def on_notification_button_clicked(
        self,
        notification_id: str,
        button_index: int,
    ) -> None:
        if notification_id == ZERO_PLAYLISTS_NOTIFICATION_ID:
            self.surfaces.open_url(USAGE_HELP_URL)
            self.surfaces.clear_notification(notification_id)
            report_hit(self.reporter, "zeroPlaylistsHelpButton")
            return

        report_warning(
            self.reporter,
            "unknown notificationId button click",
            {
                "notification_id": notification_id,
                "button_index": button_index,
                "sessions": self.sessions.snapshot(),
            },
        )

    async def drain(self) -> None:
        """Wait for outstanding click and message work (not the long-lived routers)."""
        await self.messages.drain()
        pending = [task for task in self._tasks if not task.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


def build_default_background() -> Background:
    """Wire the coordinator with JSON storage and the standalone collaborators."""
    return Background(
        settings=SettingsStore(),
        playlists=PlaylistStore(),
        sink=build_sync_sink(),
        library=NullLibrary(),
        query_engine=EmptyQueryEngine(),
        auth=NoAuth(),
        license_service=StaticLicense(),
        context=StaticContext({"version": __version__, "debug": DEBUG}),
        identity=EnvIdentity(),
        surfaces=LoggingSurfaces(),
        reporter=LoggingReporter(),
    )
