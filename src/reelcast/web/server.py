"""
Web server for Reelcast.

Provides the FastAPI application serving the display poll protocol and the
admin API.
"""

from __future__ import annotations

import contextlib
from collections.abc import AsyncIterator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..infra.logging import get_logger
from ..infra.settings import Settings, settings as _settings
from ..runtime import PollHandler, build_poll_handler
from .api import displays, playlists, poll, timeline

logger = get_logger(__name__)


@contextlib.asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    app.state.poll_handler.timeline.gateway.shutdown()


def create_app(
    poll_handler: PollHandler | None = None, config: Settings | None = None
) -> FastAPI:
    """Build the application; one PollHandler is shared by every request."""
    config = config or _settings
    app = FastAPI(title="Reelcast Display Scheduler", lifespan=_lifespan)

    origins = [o.strip() for o in config.allowed_origins.split(",") if o.strip()]
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.state.poll_handler = poll_handler or build_poll_handler(config)

    app.include_router(poll.router)
    app.include_router(displays.router)
    app.include_router(playlists.router)
    app.include_router(timeline.router)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


def run_server(host: str | None = None, port: int | None = None, reload: bool = False) -> None:
    """Run the scheduler's HTTP server with uvicorn."""
    host = host or _settings.host
    port = port or _settings.port
    logger.info("server_starting", host=host, port=port, reload=reload)
    if reload:
        uvicorn.run(
            "reelcast.web.server:create_app", factory=True, host=host, port=port, reload=True
        )
    else:
        uvicorn.run(create_app(), host=host, port=port)
