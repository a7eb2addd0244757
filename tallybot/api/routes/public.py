"""
tallybot.api.routes.public — Read-only endpoints
=================================================
"""

from __future__ import annotations

import html
import resource

import discord
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import HTMLResponse

from tallybot.api.deps import get_bot, get_guild
from tallybot.bot.core import TallyBot
from tallybot.services.log_buffer import get_logs
from tallybot.services.platform import PlatformCallError, call_platform

router = APIRouter(tags=["public"])


def _memory() -> dict:
    usage = resource.getrusage(resource.RUSAGE_SELF)
    return {"maxRssKb": usage.ru_maxrss}


# ---------------------------------------------------------------------------
# GET /
# ---------------------------------------------------------------------------
@router.get("/", response_class=HTMLResponse)
async def index(bot: TallyBot = Depends(get_bot)):
    """Tiny status page with links to the JSON endpoints."""
    online = bot.is_ready()
    colour, label = ("green", "✅ Online") if online else ("red", "❌ Offline")
    name = html.escape(str(bot.user)) if bot.user else "Discord Bot"
    return f"""<!DOCTYPE html>
<html>
<head><title>{name} Dashboard</title></head>
<body style="font-family: Arial; padding: 20px; background: #f0f0f0;">
  <h1>\U0001f916 {name} Dashboard</h1>
  <p>Bot Status: <span style="color: {colour};">{label}</span></p>
  <p>Tracked users this week: {len(bot.store)}</p>
  <h3>API Endpoints:</h3>
  <ul>
    <li><a href="/api/status">/api/status</a> - Bot status</li>
    <li><a href="/api/leaderboard">/api/leaderboard</a> - Current leaderboard</li>
    <li><a href="/health">/health</a> - Health check</li>
  </ul>
</body>
</html>"""


# ---------------------------------------------------------------------------
# GET /health
# ---------------------------------------------------------------------------
@router.get("/health")
async def health(bot: TallyBot = Depends(get_bot)):
    return {
        "status": "healthy",
        "uptime": bot.uptime_seconds,
        "users": len(bot.store),
        "botOnline": bot.is_ready(),
        "memory": _memory(),
    }


# ---------------------------------------------------------------------------
# GET /api/status
# ---------------------------------------------------------------------------
@router.get("/api/status")
async def get_status(bot: TallyBot = Depends(get_bot)):
    snapshot = bot.store.snapshot()
    guild = bot.primary_guild
    return {
        "online": bot.is_ready(),
        "members": (guild.member_count or 0) if guild else 0,
        "users": snapshot.users,
        "messages": snapshot.total,
        "uptime": bot.uptime_seconds,
        "botTag": str(bot.user) if bot.user else "Unknown",
        "mutedUsers": len(bot.mute_ledger),
    }


# ---------------------------------------------------------------------------
# GET /api/leaderboard
# ---------------------------------------------------------------------------
@router.get("/api/leaderboard")
async def get_leaderboard(bot: TallyBot = Depends(get_bot)):
    """The raw tally: ``{user_id: count}``."""
    return dict(bot.store.snapshot().counts)


# ---------------------------------------------------------------------------
# GET /api/members
# ---------------------------------------------------------------------------
@router.get("/api/members")
async def get_members(
    guild: discord.Guild = Depends(get_guild),
    bot: TallyBot = Depends(get_bot),
):
    if not guild.chunked:
        try:
            await call_platform(
                guild.chunk(), what="chunk guild members",
                timeout=bot.cfg.platform_timeout_seconds,
            )
        except PlatformCallError as exc:
            raise HTTPException(status.HTTP_502_BAD_GATEWAY, str(exc))
    return [
        {
            "id": str(member.id),
            "username": member.name,
            "discriminator": member.discriminator,
            "bot": member.bot,
            "joinedAt": member.joined_at.isoformat() if member.joined_at else None,
        }
        for member in guild.members
    ]


# ---------------------------------------------------------------------------
# GET /api/logs
# ---------------------------------------------------------------------------
@router.get("/api/logs")
async def get_recent_logs(
    tail: int = Query(50, ge=1, le=500),
    level: str | None = Query(None),
):
    """Most recent log records captured by the in-memory buffer."""
    try:
        return get_logs(tail=tail, level=level)
    except ValueError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(exc))
