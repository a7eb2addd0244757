"""
tallybot.api.main — FastAPI application factory
================================================

The dashboard runs inside the bot process (see
:mod:`tallybot.api.server`), so the app is built around a live bot::

    app = create_app(bot)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tallybot.api.routes.admin import router as admin_router
from tallybot.api.routes.moderation import router as moderation_router
from tallybot.api.routes.public import router as public_router
from tallybot.services.log_buffer import install_handler

if TYPE_CHECKING:
    from tallybot.bot.core import TallyBot

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # uvicorn reconfigures logging on startup; make sure our buffer is attached.
    install_handler()
    logger.info("Dashboard API started")
    yield
    logger.info("Dashboard API shutting down")


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled dashboard error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500, content={"success": False, "error": "Internal server error"},
    )


def create_app(bot: TallyBot) -> FastAPI:
    app = FastAPI(title="Tallybot Dashboard API", version="1.0.0", lifespan=lifespan)
    app.state.bot = bot
    app.add_exception_handler(Exception, _unhandled_error)

    app.include_router(public_router)
    app.include_router(admin_router, prefix="/api")
    app.include_router(moderation_router, prefix="/api")
    return app
