"""
tallybot.api.routes.moderation — Moderation endpoints
======================================================

Dashboard twins of the ``!kick`` … ``!clear`` chat commands, sharing the
same :class:`~tallybot.services.moderation_service.ModerationService`
(and therefore the same mute ledger).  Actions are attributed to
"Web Dashboard" in the audit log; the bearer secret stands in for the
Discord permission checks, and no role-hierarchy check applies.
"""

from __future__ import annotations

from typing import Annotated

import discord
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from tallybot.api.deps import get_bot, get_guild, require_dashboard_auth
from tallybot.bot.core import TallyBot
from tallybot.constants import TIMEOUT_DEFAULT_MINUTES
from tallybot.services.moderation_service import (
    DASHBOARD_ACTOR,
    ModerationError,
    ModerationResult,
)

router = APIRouter(
    prefix="/moderation",
    tags=["moderation"],
    dependencies=[Depends(require_dashboard_auth)],
)

BotDep = Annotated[TallyBot, Depends(get_bot)]
GuildDep = Annotated[discord.Guild, Depends(get_guild)]


class TargetBody(BaseModel):
    userId: str
    reason: str | None = None


class TimeoutBody(TargetBody):
    duration: int = TIMEOUT_DEFAULT_MINUTES


class ClearBody(BaseModel):
    channelId: str
    amount: int


def _ok(result: ModerationResult) -> dict:
    return {"success": True, "message": result.message, **result.data}


def _fail(exc: ModerationError) -> HTTPException:
    return HTTPException(exc.status_code, exc.message)


@router.post("/kick")
async def kick(body: TargetBody, bot: BotDep, guild: GuildDep):
    try:
        member = await bot.moderation.resolve_member(guild, body.userId)
        result = await bot.moderation.kick(
            guild, DASHBOARD_ACTOR, member, body.reason or "Kicked via dashboard",
        )
    except ModerationError as exc:
        raise _fail(exc)
    return _ok(result)


@router.post("/ban")
async def ban(body: TargetBody, bot: BotDep, guild: GuildDep):
    try:
        member = await bot.moderation.resolve_member(guild, body.userId)
        result = await bot.moderation.ban(
            guild, DASHBOARD_ACTOR, member, body.reason or "Banned via dashboard",
        )
    except ModerationError as exc:
        raise _fail(exc)
    return _ok(result)


@router.post("/unban")
async def unban(body: TargetBody, bot: BotDep, guild: GuildDep):
    try:
        result = await bot.moderation.unban(guild, DASHBOARD_ACTOR, body.userId, body.reason)
    except ModerationError as exc:
        raise _fail(exc)
    return _ok(result)


@router.post("/timeout")
async def timeout(body: TimeoutBody, bot: BotDep, guild: GuildDep):
    try:
        member = await bot.moderation.resolve_member(guild, body.userId)
        result = await bot.moderation.timeout_member(
            guild, DASHBOARD_ACTOR, member, body.duration,
            body.reason or "Timed out via dashboard",
        )
    except ModerationError as exc:
        raise _fail(exc)
    return _ok(result)


@router.post("/untimeout")
async def untimeout(body: TargetBody, bot: BotDep, guild: GuildDep):
    try:
        member = await bot.moderation.resolve_member(guild, body.userId)
        result = await bot.moderation.untimeout_member(guild, DASHBOARD_ACTOR, member)
    except ModerationError as exc:
        raise _fail(exc)
    return _ok(result)


@router.post("/mute")
async def mute(body: TargetBody, bot: BotDep, guild: GuildDep):
    try:
        member = await bot.moderation.resolve_member(guild, body.userId)
        result = await bot.moderation.mute(
            guild, DASHBOARD_ACTOR, member, body.reason or "Muted via dashboard",
        )
    except ModerationError as exc:
        raise _fail(exc)
    return _ok(result)


@router.post("/unmute")
async def unmute(body: TargetBody, bot: BotDep, guild: GuildDep):
    try:
        member = await bot.moderation.resolve_member(guild, body.userId)
        result = await bot.moderation.unmute(guild, DASHBOARD_ACTOR, member)
    except ModerationError as exc:
        raise _fail(exc)
    return _ok(result)


@router.post("/clear")
async def clear(body: ClearBody, bot: BotDep):
    try:
        channel_id = int(body.channelId)
    except ValueError:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid channel ID")
    channel = await bot.resolve_channel(channel_id)
    if channel is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Channel not found")
    try:
        result = await bot.moderation.clear(channel, DASHBOARD_ACTOR, body.amount)
    except ModerationError as exc:
        raise _fail(exc)
    return _ok(result)
