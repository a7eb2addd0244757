"""
tallybot.api.deps — FastAPI dependency injection
=================================================

The app is built around a live :class:`~tallybot.bot.core.TallyBot`
(``app.state.bot``); routes reach the tally, mute ledger and Discord
client through it.

Everything here, and every route, is a coroutine: the bot state is plain
in-process objects, so all access has to stay on the bot's event loop
rather than a worker thread.
"""

from __future__ import annotations

import secrets
from typing import Annotated

import discord
from fastapi import Depends, Header, HTTPException, Request, status

from tallybot.bot.core import TallyBot


async def get_bot(request: Request) -> TallyBot:
    return request.app.state.bot


async def get_guild(bot: Annotated[TallyBot, Depends(get_bot)]) -> discord.Guild:
    """The primary guild.  Raises 503 if the bot isn't in one yet."""
    guild = bot.primary_guild
    if guild is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "Guild not found")
    return guild


async def require_dashboard_auth(
    bot: Annotated[TallyBot, Depends(get_bot)],
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """Require ``Authorization: Bearer <DASHBOARD_PASSWORD>``.  Raises 401 otherwise.

    With no secret configured every request is rejected.
    """
    secret = bot.cfg.dashboard_secret
    if not secret or not authorization:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Authentication required")
    if not secrets.compare_digest(authorization.encode(), f"Bearer {secret}".encode()):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Authentication required")
