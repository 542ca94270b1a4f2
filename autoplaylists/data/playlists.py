from typing import Any, Dict, List, Optional

from autoplaylists.config import PLAYLISTS_FILE
from autoplaylists.core import (
    PlaylistRecord,
    StorageChange,
    log_warning,
    read_json,
    write_json,
)

from .feed import ChangeFeed, Subscription


def _serialize(record: PlaylistRecord) -> Dict[str, Any]:
    return record.model_dump(mode="json", by_alias=True, exclude_none=True)


class PlaylistStore:
    """
    JSON-backed playlist records, grouped by user.

    On-disk structure:
      {
        "user_id": {
          "local_id": { "userId": "...", "localId": "...", "remoteId": "...", ... },
          ...
        },
        ...
      }

    Every save or delete publishes a StorageChange carrying PlaylistRecord
    values, which is what the change router turns into sync requests.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path or PLAYLISTS_FILE
        self._feed = ChangeFeed()

    def _load(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        data = read_json(self.path, default={})
        if not isinstance(data, dict):
            log_warning("Playlists file has invalid structure; ignoring it.")
            return {}
        return data

    @staticmethod
    def _parse(raw: Any) -> Optional[PlaylistRecord]:
        if not isinstance(raw, dict):
            return None
        try:
            return PlaylistRecord(**raw)
        except Exception:
            # Ignore malformed entries instead of failing the whole load.
            return None

    def subscribe(self) -> Subscription:
        return self._feed.subscribe()

    async def get_playlists_for_user(self, user_id: str) -> List[PlaylistRecord]:
        user_playlists = self._load().get(user_id) or {}
        if not isinstance(user_playlists, dict):
            return []

        playlists: List[PlaylistRecord] = []
        for raw in user_playlists.values():
            record = self._parse(raw)
            if record is not None:
                playlists.append(record)
        return playlists

    async def save_playlist(self, record: PlaylistRecord) -> None:
        data = self._load()
        user_playlists = data.setdefault(record.user_id, {})
        old_value = self._parse(user_playlists.get(record.local_id))

        user_playlists[record.local_id] = _serialize(record)
        write_json(self.path, data)

        self._feed.publish(StorageChange(old_value=old_value, new_value=record))

    async def delete_playlist(self, user_id: str, local_id: str) -> bool:
        data = self._load()
        user_playlists = data.get(user_id) or {}
        raw = user_playlists.pop(local_id, None)
        if raw is None:
            return False

        write_json(self.path, data)
        self._feed.publish(StorageChange(old_value=self._parse(raw), new_value=None))
        return True
