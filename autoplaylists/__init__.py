"""Background sync coordinator for auto playlists."""

__version__ = "0.1.0"
