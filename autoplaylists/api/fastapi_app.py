from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from autoplaylists import __version__
from autoplaylists.core import configure_logging
from autoplaylists.runtime import Background, build_default_background

from .messages import router as messages_router
from .playlists import router as playlists_router
from .settings import router as settings_router

configure_logging()


def create_app(background: Optional[Background] = None) -> FastAPI:
    """
    Build the HTTP surface around a coordinator.

    The coordinator starts with the app and stops with it.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await app.state.background.start()
        try:
            yield
        finally:
            await app.state.background.stop()

    app = FastAPI(
        title="Auto-Playlists Sync Coordinator",
        version=__version__,
        description="Schedules and routes playlist sync requests for a browser client.",
        lifespan=lifespan,
    )
    app.state.background = background or build_default_background()

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    app.include_router(messages_router, tags=["messages"])
    app.include_router(settings_router, prefix="/settings", tags=["settings"])
    app.include_router(playlists_router, prefix="/playlists", tags=["playlists"])
    return app


app = create_app()
