from typing import Any, Dict, Optional

from autoplaylists.config import (
    DEFAULT_SYNC_MS,
    SETTINGS_FILE,
    SETTINGS_SCHEMA_VERSION,
)
from autoplaylists.core import StorageChange, log_info, log_warning, read_json, write_json

from .feed import ChangeFeed, Subscription

LAST_PSYNC_KEY = "lastPSync"
SYNC_MS_KEY = "syncMs"
SHOULD_NOT_WELCOME_KEY = "shouldNotWelcome"
SCHEMA_VERSION_KEY = "schemaVersion"


class SettingsStore:
    """
    JSON-backed key-value settings used by the scheduler and startup code.

    The whole document is small, so it is read once and rewritten in full on
    every change. Changes to the sync interval are published to subscribers
    as StorageChange(old_value, new_value).
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path or SETTINGS_FILE
        self._data: Optional[Dict[str, Any]] = None
        self._sync_ms_feed = ChangeFeed()

    def _load(self) -> Dict[str, Any]:
        if self._data is None:

            def _on_error(e: Exception) -> None:
                log_warning("Settings file is corrupted; starting from defaults.")

            data = read_json(self.path, default={}, on_error=_on_error)
            if not isinstance(data, dict):
                log_warning("Settings file has invalid structure; ignoring it.")
                data = {}
            self._data = data
        return self._data

    def _set(self, key: str, value: Any) -> Any:
        data = self._load()
        old_value = data.get(key)
        data[key] = value
        write_json(self.path, data)
        return old_value

    async def migrate(self) -> None:
        """
        Bring the settings document up to the current schema.

        Missing keys get their defaults so that later reads and change
        notifications always carry concrete values.
        """
        data = self._load()
        version = data.get(SCHEMA_VERSION_KEY, 0)
        if version >= SETTINGS_SCHEMA_VERSION:
            return

        data.setdefault(LAST_PSYNC_KEY, 0)
        data.setdefault(SYNC_MS_KEY, DEFAULT_SYNC_MS)
        data.setdefault(SHOULD_NOT_WELCOME_KEY, False)
        data[SCHEMA_VERSION_KEY] = SETTINGS_SCHEMA_VERSION
        write_json(self.path, data)
        log_info(f"Migrated settings from schema {version} to {SETTINGS_SCHEMA_VERSION}.")

    async def get_last_psync(self) -> int:
        return int(self._load().get(LAST_PSYNC_KEY, 0) or 0)

    async def set_last_psync(self, timestamp_ms: int) -> None:
        self._set(LAST_PSYNC_KEY, int(timestamp_ms))

    async def get_sync_ms(self) -> int:
        value = self._load().get(SYNC_MS_KEY)
        if value is None:
            return DEFAULT_SYNC_MS
        return int(value)

    async def set_sync_ms(self, sync_ms: int) -> None:
        old_value = self._set(SYNC_MS_KEY, int(sync_ms))
        if old_value != sync_ms:
            self._sync_ms_feed.publish(
                StorageChange(old_value=old_value, new_value=int(sync_ms))
            )

    def subscribe_sync_ms(self) -> Subscription:
        return self._sync_ms_feed.subscribe()

    async def get_should_not_welcome(self) -> bool:
        return bool(self._load().get(SHOULD_NOT_WELCOME_KEY, False))

    async def set_should_not_welcome(self, value: bool) -> None:
        self._set(SHOULD_NOT_WELCOME_KEY, bool(value))
