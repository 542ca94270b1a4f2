"""Public façade for the autoplaylists.data package.

This module exposes the JSON-backed storage collaborator: settings (last
periodic sync, sync interval, welcome flag), playlist records, and the change
feeds that deliver their updates. Callers should use this façade instead of
importing the internal modules directly.
"""

from .feed import ChangeFeed, Subscription
from .playlists import PlaylistStore
from .settings import SettingsStore

__all__ = [
    "ChangeFeed",
    "Subscription",
    "PlaylistStore",
    "SettingsStore",
]
