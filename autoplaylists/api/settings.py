from fastapi import APIRouter, Depends

from autoplaylists.config import MIN_SYNC_MS
from autoplaylists.core import log_info
from autoplaylists.runtime import Background

from .deps import get_background
from .schemas import SyncIntervalRequest, SyncSettingsResponse

router = APIRouter()


async def _current(background: Background) -> SyncSettingsResponse:
    sync_ms = await background.settings.get_sync_ms()
    return SyncSettingsResponse(
        sync_ms=sync_ms,
        last_psync=await background.settings.get_last_psync(),
        periodic_syncs_enabled=sync_ms >= MIN_SYNC_MS,
    )


@router.get("/sync-interval", response_model=SyncSettingsResponse)
async def get_sync_interval(
    background: Background = Depends(get_background),
) -> SyncSettingsResponse:
    return await _current(background)


@router.put("/sync-interval", response_model=SyncSettingsResponse)
async def put_sync_interval(
    body: SyncIntervalRequest,
    background: Background = Depends(get_background),
) -> SyncSettingsResponse:
    """
    Change the periodic sync interval.

    Values below one minute (0 included) turn periodic syncing off. The
    scheduler picks the change up from the settings subscription.
    """
    log_info(f"Sync interval set to {body.sync_ms}ms via API.")
    await background.settings.set_sync_ms(body.sync_ms)
    return await _current(background)
