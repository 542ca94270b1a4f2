from fastapi import APIRouter, Depends, HTTPException, Response

from autoplaylists.core import PlaylistRecord
from autoplaylists.runtime import Background

from .deps import get_background
from .schemas import PlaylistsResponse, PlaylistUpsertRequest

router = APIRouter()


def _serialize(record: PlaylistRecord) -> dict:
    return record.model_dump(mode="json", by_alias=True, exclude_none=True)


@router.get("/{user_id}", response_model=PlaylistsResponse)
async def list_playlists(
    user_id: str,
    background: Background = Depends(get_background),
) -> PlaylistsResponse:
    playlists = await background.playlists.get_playlists_for_user(user_id)
    return PlaylistsResponse(
        playlists=[_serialize(p) for p in playlists],
        total=len(playlists),
    )


@router.put("/{user_id}/{local_id}")
async def put_playlist(
    user_id: str,
    local_id: str,
    body: PlaylistUpsertRequest,
    background: Background = Depends(get_background),
) -> dict:
    """
    Create or update a stored playlist.

    Storing it publishes a change, which becomes a create-or-update sync
    request.
    """
    fields = body.model_dump(by_alias=True, exclude_none=True)
    # The path decides which record this is.
    fields.pop("userId", None)
    fields.pop("localId", None)
    record = PlaylistRecord(userId=user_id, localId=local_id, **fields)
    await background.playlists.save_playlist(record)
    return _serialize(record)


@router.delete("/{user_id}/{local_id}", status_code=204)
async def delete_playlist(
    user_id: str,
    local_id: str,
    background: Background = Depends(get_background),
) -> Response:
    deleted = await background.playlists.delete_playlist(user_id, local_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Playlist not found.")
    return Response(status_code=204)
