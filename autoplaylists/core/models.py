from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class Tier(str, Enum):
    FREE = "free"
    PAID = "paid"

    @classmethod
    def from_request(cls, value: Any) -> "Tier":
        """
        Map the numeric subscription tier reported by the page to a Tier.

        The page reports 2 for a paid subscription; anything else is free.
        """
        if value == 2 or value == cls.PAID.value:
            return cls.PAID
        return cls.FREE


class SyncAction(str, Enum):
    CREATE_OR_UPDATE = "create-or-update"
    DELETE = "delete"
    UPDATE_ALL = "update-all"


@dataclass
class SessionEntry:
    """
    A detected user session and the UI surface currently showing it.
    """

    user_id: str
    session_index: int
    surface_id: int
    xsrf_token: Optional[str]
    tier: Tier
    account_id: Optional[str]


class SyncRequest(BaseModel):
    """
    Outbound request to the sync engine.

    `remote_id` is only set for deletes, when the stored record is gone and
    the engine needs the remote identity to delete it.
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    action: SyncAction
    local_id: Optional[str] = Field(default=None, alias="localId")
    remote_id: Optional[str] = Field(default=None, alias="remoteId")

    def to_message(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PlaylistRecord(BaseModel):
    """
    A stored playlist as it appears in storage change notifications.

    Fields the coordinator does not care about (rules, sort order, ...) are
    kept as extras so records round-trip unchanged.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    user_id: str = Field(alias="userId")
    local_id: str = Field(alias="localId")
    remote_id: Optional[str] = Field(default=None, alias="remoteId")
    title: Optional[str] = None


@dataclass
class StorageChange:
    """
    A `{oldValue?, newValue?}` pair delivered by a storage subscription.

    None means the side is absent: no old value for a create, no new value
    for a delete.
    """

    old_value: Optional[Any] = None
    new_value: Optional[Any] = None


class SplaylistCache(BaseModel):
    """
    Special-playlist cache for one user (thumbs up, last added, ...).

    Populated by the library collaborator; an empty cache is a valid
    fallback for callers that ask before it was synced.
    """

    entries: Dict[str, Any] = Field(default_factory=dict)
    synced_at: Optional[int] = None
