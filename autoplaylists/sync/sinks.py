import asyncio
import logging
from typing import List, Optional

import requests

from autoplaylists.config import SYNC_ENGINE_TIMEOUT, SYNC_ENGINE_URL
from autoplaylists.core import SyncRequest, log_warning

from .collaborators import SyncSink

logger = logging.getLogger(__name__)


class MemorySyncSink(SyncSink):
    """Keeps requests in memory, in arrival order (standalone runs and tests)."""

    def __init__(self) -> None:
        self.requests: List[SyncRequest] = []

    async def request_sync(self, request: SyncRequest) -> None:
        self.requests.append(request)

    def drain(self) -> List[SyncRequest]:
        pending, self.requests = self.requests, []
        return pending


class HttpSyncSink(SyncSink):
    """
    POSTs each request as JSON to the sync engine.

    Delivery is fire-and-forget: failures are logged, never raised to the
    code that asked for the sync.
    """

    def __init__(
        self,
        url: str,
        timeout: float = SYNC_ENGINE_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, request: SyncRequest) -> None:
        r = self.session.post(self.url, json=request.to_message(), timeout=self.timeout)
        r.raise_for_status()

    async def request_sync(self, request: SyncRequest) -> None:
        try:
            await asyncio.to_thread(self._post, request)
        except requests.RequestException as e:
            log_warning(f"Sync engine rejected {request.action.value} for {request.user_id}: {e}")


def build_sync_sink(url: Optional[str] = None) -> SyncSink:
    """HTTP sink when a sync engine URL is configured, memory sink otherwise."""
    url = url if url is not None else SYNC_ENGINE_URL
    if url:
        return HttpSyncSink(url)
    logger.info("No sync engine URL configured; keeping sync requests in memory.")
    return MemorySyncSink()
