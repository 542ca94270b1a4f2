"""HTTP surface of the sync coordinator (inbound messages, settings, playlists)."""
