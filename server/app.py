"""FastAPI application for Mangatrack.

Exposes (all POST, JSON bodies):
- /get_token, /verify_token
- /proxy
- /create_user, /list_users
- /add_fav, /remove_fav, /get_favorites
- /add_finished, /get_finished
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from .config import TrackerConfig
from .errors import install_error_handlers
from .logging_config import get_logger

from tracker import router as tracker_router
from tracker.auth import TokenService
from tracker.services import FavoritesManager, FinishedChaptersManager
from tracker.store import UserRecordStore

logger = get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and duration of every request."""

    async def dispatch(self, request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        client_ip = request.client.host if request.client else "unknown"
        logging.getLogger("mangatrack.request").debug(
            'ip="%s" url="%s %s" status=%d ms=%.1f'
            % (client_ip, request.method, request.url.path, response.status_code, elapsed_ms)
        )
        return response


def create_app(config: TrackerConfig) -> FastAPI:
    """Build the app with services wired from an already-loaded config."""
    store = UserRecordStore(config.storage_dir)
    store.ensure_root()

    app = FastAPI(title="Mangatrack")
    app.state.config = config
    app.state.token_service = TokenService(config.auth)
    app.state.store = store
    app.state.favorites = FavoritesManager(store)
    app.state.finished = FinishedChaptersManager(store)

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)
    app.include_router(tracker_router)

    @app.get("/health", include_in_schema=False)
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/favicon.ico", include_in_schema=False)
    def favicon() -> Response:
        return Response(status_code=204)

    return app


def run_server(
    config: TrackerConfig,
    host: Optional[str] = None,
    port: Optional[int] = None,
) -> None:
    """Run the FastAPI app with Uvicorn."""
    import uvicorn

    effective_host = host or config.server_host
    effective_port = port or config.server_port

    app = create_app(config)
    logger.info(f"Storing user records in {config.storage_dir}")
    logger.info(f"Server running at http://localhost:{effective_port}")

    uvicorn.run(
        app,
        host=effective_host,
        port=effective_port,
        log_level="info",
        log_config=None,
    )
