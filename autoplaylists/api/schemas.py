from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class InboundMessage(BaseModel):
    """
    A message from a UI surface: an `action` tag plus action-specific fields.

    `surfaceId` identifies the sending tab and is not part of the payload the
    router sees.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    action: str
    surface_id: Optional[int] = Field(default=None, alias="surfaceId")

    def payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude={"surface_id"})


class MessageResponse(BaseModel):
    response: Any


class SyncIntervalRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sync_ms: int = Field(alias="syncMs", ge=0)


class SyncSettingsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sync_ms: int = Field(alias="syncMs")
    last_psync: int = Field(alias="lastPSync")
    periodic_syncs_enabled: bool = Field(alias="periodicSyncsEnabled")


class PlaylistUpsertRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    remote_id: Optional[str] = Field(default=None, alias="remoteId")
    title: Optional[str] = None


class PlaylistsResponse(BaseModel):
    playlists: List[Dict[str, Any]]
    total: int
