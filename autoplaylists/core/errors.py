class AutoplaylistsError(Exception):
    """Base class for errors raised by the sync coordinator."""


class UnknownSessionError(AutoplaylistsError):
    """Raised when an operation needs a session that was never detected."""

    def __init__(self, user_id: str):
        super().__init__(f"No session for user {user_id!r}.")
        self.user_id = user_id


class DebugQueryDisabled(AutoplaylistsError):
    """Raised when a debug query arrives while debug mode is off."""
