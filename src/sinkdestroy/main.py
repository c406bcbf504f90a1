"""Sink & Destroy local control API (FastAPI) in front of the game controller."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request

from src.sinkdestroy.api.routes.game import router as game_router
from src.sinkdestroy.core.config import (
    APP_VERSION,
    ENVIRONMENT,
    LOG_LEVEL,
    SERVER_HOST,
    SERVER_PORT,
    SERVER_URL,
    ControllerSettings,
)
from src.sinkdestroy.game.controller import GameController
from src.sinkdestroy.net.client import BattleshipClient, GameServer
from src.sinkdestroy.net.connection import connection_details

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(
    server: GameServer | None = None,
    settings: ControllerSettings | None = None,
) -> FastAPI:
    """Build the app; without ``server`` an httpx client for SERVER_URL is used."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        async with AsyncExitStack() as stack:
            backend = server
            if backend is None:
                backend = await stack.enter_async_context(BattleshipClient())
                logger.info("Using game server at %s", SERVER_URL)
            app.state.controller = await stack.enter_async_context(
                GameController(backend, settings)
            )
            yield

    app = FastAPI(title="Sink & Destroy", version=APP_VERSION, lifespan=lifespan)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {
            "status": "ok",
            "environment": ENVIRONMENT,
            "ts": datetime.now(UTC).isoformat(),
        }

    @app.get("/ping")
    async def ping(request: Request) -> dict[str, bool | str]:
        """Ask the game server whether it is alive."""
        result = await request.app.state.controller.ping()
        if not result.success:
            logger.warning("Game server not responding: %s", result.error)
            return {"ping": False, "error": result.error}
        return {"ping": bool(result.data)}

    @app.get("/connection")
    async def connection() -> dict[str, bool | str]:
        reachable, details = await connection_details(SERVER_HOST, SERVER_PORT)
        return {"reachable": reachable, "details": details}

    app.include_router(game_router)
    return app


app = create_app()
