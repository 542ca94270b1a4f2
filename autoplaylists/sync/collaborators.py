"""Interfaces of the external collaborators the sync core talks to.

The core never performs network sync, track queries, authentication or UI
work itself. It calls these interfaces and reacts to their results. Each
interface ships with a minimal default implementation so the service can run
standalone; real deployments inject their own.
"""

from abc import ABC, abstractmethod
import logging
from typing import Any, Dict, List, Optional

from autoplaylists.config import PRIMARY_ACCOUNT_ID
from autoplaylists.core import SplaylistCache, SyncRequest, log_warning

logger = logging.getLogger(__name__)


class SyncSink(ABC):
    """Accepts sync requests for the sync engine. No acknowledgment."""

    @abstractmethod
    async def request_sync(self, request: SyncRequest) -> None:
        raise NotImplementedError


class Library(ABC):
    """Local library and special-playlist cache owned by the sync engine."""

    @abstractmethod
    async def init_library(self, user_id: str) -> None:
        """Warm up the local track library for `user_id`."""
        raise NotImplementedError

    def open_splaylistcache(self) -> SplaylistCache:
        return SplaylistCache()

    @abstractmethod
    async def sync_splaylistcache(self, user_id: str, cache: SplaylistCache) -> None:
        """Populate `cache` for `user_id`."""
        raise NotImplementedError


class QueryEngine(ABC):
    @abstractmethod
    async def query_tracks(
        self,
        user_id: str,
        cache: SplaylistCache,
        playlist: Dict[str, Any],
    ) -> List[Dict[str, Any]]:
        """Return the tracks matching a stored playlist definition."""
        raise NotImplementedError

    @abstractmethod
    async def list_tracks(self, user_id: str) -> List[Dict[str, Any]]:
        """Return every track in the user's local library."""
        raise NotImplementedError

    def reset_random_cache(self) -> None:
        """Forget cached random orderings (done when a session is detected)."""


class AuthProvider(ABC):
    @abstractmethod
    async def get_token(self, interactive: bool, reason: str) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    async def verify_token(self, token: Optional[str]) -> Optional[str]:
        """Return the token if it is still valid, None otherwise."""
        raise NotImplementedError


class LicenseService(ABC):
    @abstractmethod
    async def has_full_version(self, interactive: bool) -> bool:
        raise NotImplementedError


class ContextProvider(ABC):
    @abstractmethod
    async def get(self) -> Dict[str, Any]:
        raise NotImplementedError


class IdentityProvider(ABC):
    @abstractmethod
    async def get_primary_account_id(self) -> Optional[str]:
        raise NotImplementedError


class Surfaces(ABC):
    """UI surfaces: page action, extension tabs and notifications."""

    @abstractmethod
    def show_page_action(self, surface_id: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def open_page(self, page: str, query: Optional[Dict[str, Any]] = None) -> None:
        """Focus or create the extension page `page`."""
        raise NotImplementedError

    @abstractmethod
    def open_url(self, url: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def create_notification(
        self,
        notification_id: str,
        title: str,
        message: str,
        buttons: Optional[List[str]] = None,
    ) -> None:
        raise NotImplementedError

    @abstractmethod
    def clear_notification(self, notification_id: str) -> None:
        raise NotImplementedError


class Reporter(ABC):
    """Telemetry sink (error reports and usage hits)."""

    @abstractmethod
    def capture_message(
        self,
        message: str,
        level: str = "warning",
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        raise NotImplementedError

    @abstractmethod
    def report_hit(self, name: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_tags(self, tags: Dict[str, Any]) -> None:
        raise NotImplementedError


def report_warning(
    reporter: Reporter,
    message: str,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log a warning and forward it to telemetry.

    Reporter errors are logged and dropped.
    """
    log_warning(message)
    try:
        reporter.capture_message(message, level="warning", extra=extra or {})
    except Exception:
        logger.exception("Telemetry reporter failed for %r", message)


def report_hit(reporter: Reporter, name: str) -> None:
    try:
        reporter.report_hit(name)
    except Exception:
        logger.exception("Telemetry reporter failed for hit %r", name)


# ---------- Default implementations ----------


class NullLibrary(Library):
    """A library with nothing to warm up; caches are marked synced at once."""

    async def init_library(self, user_id: str) -> None:
        logger.debug("No library warm-up for %s", user_id)

    async def sync_splaylistcache(self, user_id: str, cache: SplaylistCache) -> None:
        cache.synced_at = 0


class EmptyQueryEngine(QueryEngine):
    async def query_tracks(
        self,
        user_id: str,
        cache: SplaylistCache,
        playlist: Dict[str, Any],
    ) -> List[Dict[str, Any]]:
        return []

    async def list_tracks(self, user_id: str) -> List[Dict[str, Any]]:
        return []


class NoAuth(AuthProvider):
    """Never authorized: periodic syncs stay off until a real provider is used."""

    async def get_token(self, interactive: bool, reason: str) -> Optional[str]:
        return None

    async def verify_token(self, token: Optional[str]) -> Optional[str]:
        return None


class StaticLicense(LicenseService):
    def __init__(self, full_version: bool = False):
        self.full_version = full_version

    async def has_full_version(self, interactive: bool) -> bool:
        return self.full_version


class StaticContext(ContextProvider):
    def __init__(self, context: Optional[Dict[str, Any]] = None):
        self.context = dict(context or {})

    async def get(self) -> Dict[str, Any]:
        return dict(self.context)


class EnvIdentity(IdentityProvider):
    """Primary account taken from configuration."""

    def __init__(self, account_id: Optional[str] = None):
        self.account_id = account_id if account_id is not None else PRIMARY_ACCOUNT_ID

    async def get_primary_account_id(self) -> Optional[str]:
        return self.account_id


class LoggingSurfaces(Surfaces):
    """Logs UI requests instead of drawing anything."""

    def show_page_action(self, surface_id: int) -> None:
        logger.info("show page action on surface %s", surface_id)

    def open_page(self, page: str, query: Optional[Dict[str, Any]] = None) -> None:
        logger.info("open page %s %s", page, query or {})

    def open_url(self, url: str) -> None:
        logger.info("open url %s", url)

    def create_notification(
        self,
        notification_id: str,
        title: str,
        message: str,
        buttons: Optional[List[str]] = None,
    ) -> None:
        logger.info("notification %s: %s", notification_id, title)

    def clear_notification(self, notification_id: str) -> None:
        logger.info("clear notification %s", notification_id)


_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class LoggingReporter(Reporter):
    def __init__(self) -> None:
        self.tags: Dict[str, Any] = {}

    def capture_message(
        self,
        message: str,
        level: str = "warning",
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        logger.log(
            _LEVELS.get(level, logging.WARNING),
            "telemetry: %s %s",
            message,
            extra or {},
        )

    def report_hit(self, name: str) -> None:
        logger.debug("telemetry hit: %s", name)

    def set_tags(self, tags: Dict[str, Any]) -> None:
        self.tags.update(tags)
