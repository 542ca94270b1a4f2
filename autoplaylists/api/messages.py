from fastapi import APIRouter, Depends, Response
from fastapi.encoders import jsonable_encoder

from autoplaylists.runtime import Background
from autoplaylists.sync import SenderContext

from .deps import get_background
from .schemas import InboundMessage, MessageResponse

router = APIRouter()


@router.post("/messages", response_model=MessageResponse)
async def post_message(
    message: InboundMessage,
    background: Background = Depends(get_background),
):
    """
    Dispatch one inbound action request.

    Deferred actions (query, debugQuery, getContext) keep the request open
    until their collaborator answers. Actions without a response, and
    debug queries that failed, return 204.
    """
    response = await background.messages.dispatch(
        message.payload(),
        SenderContext(surface_id=message.surface_id),
    )
    if response is None:
        return Response(status_code=204)
    return MessageResponse(response=jsonable_encoder(response))


@router.post("/surfaces/{surface_id}/page-action", status_code=204)
async def click_page_action(
    surface_id: int,
    background: Background = Depends(get_background),
) -> Response:
    await background.on_page_action_clicked(surface_id)
    return Response(status_code=204)


@router.post(
    "/notifications/{notification_id}/buttons/{button_index}",
    status_code=204,
)
async def click_notification_button(
    notification_id: str,
    button_index: int,
    background: Background = Depends(get_background),
) -> Response:
    await background.on_notification_button_clicked(notification_id, button_index)
    return Response(status_code=204)
