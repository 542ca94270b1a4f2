from typing import Dict, List, Optional

from autoplaylists.core import SessionEntry, SplaylistCache, Tier, log_info, log_warning


class SessionRegistry:
    """
    Detected user sessions, keyed by user id.

    At most one session exists per user id, per surface id and per session
    index. Only the primary account is ever stored. The registry also owns
    the per-user special-playlist caches built once syncing is initialized.
    """

    def __init__(self, primary_account_id: Optional[str] = None):
        self.primary_account_id = primary_account_id
        self._sessions: Dict[str, SessionEntry] = {}
        self.caches: Dict[str, SplaylistCache] = {}

    def is_primary(self, account_id: Optional[str]) -> bool:
        return self.primary_account_id is not None and account_id == self.primary_account_id

    def evict_conflicting(self, surface_id: int, session_index: int) -> List[str]:
        """
        Drop sessions sitting on the given surface or session index.

        Covers a surface that switched to another account. Returns the evicted
        user ids.
        """
        evicted = [
            user_id
            for user_id, entry in self._sessions.items()
            if entry.surface_id == surface_id or entry.session_index == session_index
        ]
        for user_id in evicted:
            del self._sessions[user_id]
        if evicted:
            log_info(f"Evicted stale sessions {evicted} for surface {surface_id}.")
        return evicted

    def upsert(
        self,
        user_id: str,
        session_index: int,
        surface_id: int,
        xsrf_token: Optional[str],
        tier: Tier,
        account_id: Optional[str],
    ) -> bool:
        if not self.is_primary(account_id):
            log_warning(f"Not storing session for {user_id}: not the primary account.")
            return False

        self.evict_conflicting(surface_id, session_index)
        self._sessions[user_id] = SessionEntry(
            user_id=user_id,
            session_index=session_index,
            surface_id=surface_id,
            xsrf_token=xsrf_token,
            tier=tier,
            account_id=account_id,
        )
        return True

    def update_xsrf(self, user_id: str, token: str) -> bool:
        entry = self._sessions.get(user_id)
        if entry is None:
            log_warning(f"Cannot update xsrf token: no session for {user_id}.")
            return False
        entry.xsrf_token = token
        return True

    def lookup_by_surface(self, surface_id: int) -> Optional[str]:
        # Surfaces are bounded by open tabs; a scan is fine.
        for user_id, entry in self._sessions.items():
            if entry.surface_id == surface_id:
                return user_id
        return None

    def get(self, user_id: str) -> Optional[SessionEntry]:
        return self._sessions.get(user_id)

    def remove(self, user_id: str) -> None:
        self._sessions.pop(user_id, None)

    def user_ids(self) -> List[str]:
        return list(self._sessions)

    def snapshot(self) -> Dict[str, Dict]:
        """Plain-dict view of the sessions, for telemetry extras."""
        return {
            user_id: {
                "sessionIndex": entry.session_index,
                "surfaceId": entry.surface_id,
                "tier": entry.tier.value,
            }
            for user_id, entry in self._sessions.items()
        }

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def reset(self) -> None:
        self._sessions.clear()
        self.caches.clear()
