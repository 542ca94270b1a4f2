from fastapi import Request

from autoplaylists.runtime import Background


def get_background(request: Request) -> Background:
    return request.app.state.background
