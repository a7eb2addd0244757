"""
tallybot.api.routes.admin — Leaderboard & announcement endpoints
=================================================================

Every route here requires the dashboard bearer secret.
"""

from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from tallybot.api.deps import get_bot, require_dashboard_auth
from tallybot.bot.core import TallyBot
from tallybot.services.embeds import build_announcement_embed
from tallybot.services.leaderboard_service import CycleInProgressError
from tallybot.services.platform import PlatformCallError, call_platform

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"], dependencies=[Depends(require_dashboard_auth)])


class AnnouncementBody(BaseModel):
    channel: Literal["leaderboard", "suggestions", "logs"] = "leaderboard"
    message: str = Field(..., min_length=1, max_length=4096)


# ---------------------------------------------------------------------------
# POST /api/test-leaderboard
# ---------------------------------------------------------------------------
@router.post("/test-leaderboard")
async def run_leaderboard(bot: TallyBot = Depends(get_bot)):
    """Run the leaderboard cycle now."""
    try:
        result = await bot.leaderboard.run(bot)
    except CycleInProgressError as exc:
        raise HTTPException(status.HTTP_409_CONFLICT, str(exc))
    if not result.ok:
        raise HTTPException(status.HTTP_502_BAD_GATEWAY, result.summary())
    return {
        "success": True,
        "message": result.summary(),
        "status": result.status,
        "ranking": [
            {"rank": e.rank, "userId": e.user_id, "count": e.count} for e in result.ranking
        ],
        "total": result.total,
        "winner": result.winner_id,
    }


# ---------------------------------------------------------------------------
# POST /api/reset-leaderboard
# ---------------------------------------------------------------------------
@router.post("/reset-leaderboard")
async def reset_leaderboard(bot: TallyBot = Depends(get_bot)):
    if bot.leaderboard.running:
        raise HTTPException(status.HTTP_409_CONFLICT, "A leaderboard cycle is already running")
    bot.store.reset()
    logger.info("Leaderboard reset via dashboard")
    return {"success": True, "message": "Leaderboard reset successfully"}


# ---------------------------------------------------------------------------
# POST /api/announcement
# ---------------------------------------------------------------------------
@router.post("/announcement")
async def post_announcement(body: AnnouncementBody, bot: TallyBot = Depends(get_bot)):
    channel_id = {
        "leaderboard": bot.cfg.leaderboard_channel_id,
        "suggestions": bot.cfg.suggestions_channel_id,
        "logs": bot.cfg.logs_channel_id,
    }[body.channel]

    channel = await bot.resolve_channel(channel_id)
    if channel is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Channel not found")

    try:
        await call_platform(
            channel.send(embed=build_announcement_embed(body.message)),
            what=f"send announcement to {body.channel}",
            timeout=bot.cfg.platform_timeout_seconds,
        )
    except PlatformCallError as exc:
        raise HTTPException(status.HTTP_502_BAD_GATEWAY, str(exc))
    return {"success": True, "message": "Announcement sent successfully"}
