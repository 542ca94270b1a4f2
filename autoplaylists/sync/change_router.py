import logging
from typing import Any, Optional

from autoplaylists.core import PlaylistRecord, StorageChange, SyncAction, SyncRequest
from autoplaylists.data import Subscription

from .collaborators import SyncSink

logger = logging.getLogger(__name__)


def _as_record(value: Any) -> Optional[PlaylistRecord]:
    if value is None or isinstance(value, PlaylistRecord):
        return value
    return PlaylistRecord(**value)


def build_sync_request(change: StorageChange) -> SyncRequest:
    """
    Translate one playlist storage change into one sync request.

    An old value without a new one is a delete: the request is built from
    the old record, which is also the only place the remote id still lives.
    Anything else (create or update) is built from the new record.
    """
    old_value = _as_record(change.old_value)
    new_value = _as_record(change.new_value)

    if old_value is not None and new_value is None:
        return SyncRequest(
            user_id=old_value.user_id,
            action=SyncAction.DELETE,
            local_id=old_value.local_id,
            remote_id=old_value.remote_id,
        )

    if new_value is None:
        raise ValueError("Playlist change carries neither an old nor a new value.")

    return SyncRequest(
        user_id=new_value.user_id,
        action=SyncAction.CREATE_OR_UPDATE,
        local_id=new_value.local_id,
    )


class ChangeEventRouter:
    """Turns playlist change notifications into single-item sync requests."""

    def __init__(self, sink: SyncSink):
        self.sink = sink

    async def on_playlist_change(self, change: StorageChange) -> SyncRequest:
        request = build_sync_request(change)
        logger.debug("playlist change -> %s", request.to_message())
        await self.sink.request_sync(request)
        return request

    async def run(self, changes: Subscription) -> None:
        """Route every change from `changes` until the subscription is closed."""
        async for change in changes:
            try:
                await self.on_playlist_change(change)
            except Exception:
                logger.exception("Failed to route playlist change %r", change)
