"""
tallybot.bot.cogs.tasks — Periodic Background Tasks
=====================================================

Scheduled jobs that run on ``discord.ext.tasks`` loops:

- **Weekly leaderboard** — checked daily at ``leaderboard_hour`` UTC and
  run on ``leaderboard_weekday`` (default Sunday 00:00 UTC).
- **Tally persistence** — force-flushes the snapshot every 5 minutes.
- **Cooldown pruning** — drops stale cooldown stamps every 5 minutes.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import TYPE_CHECKING

from discord.ext import commands, tasks
from discord.utils import utcnow

from tallybot.constants import PERSIST_INTERVAL_MINUTES
from tallybot.services.leaderboard_service import CycleInProgressError

if TYPE_CHECKING:
    from tallybot.bot.core import TallyBot

logger = logging.getLogger(__name__)


def is_leaderboard_day(now: dt.datetime, weekday: int) -> bool:
    return now.weekday() == weekday


class PeriodicTasks(commands.Cog):
    """Cog for scheduled background tasks."""

    def __init__(self, bot: TallyBot) -> None:
        self.bot = bot
        self.leaderboard_loop.change_interval(
            time=dt.time(hour=bot.cfg.leaderboard_hour, tzinfo=dt.UTC),
        )

    async def cog_load(self) -> None:
        """Start task loops when the cog is loaded."""
        self.leaderboard_loop.start()
        self.persist_loop.start()
        self.cooldown_loop.start()

    async def cog_unload(self) -> None:
        """Cancel task loops on unload."""
        self.leaderboard_loop.cancel()
        self.persist_loop.cancel()
        self.cooldown_loop.cancel()

    # -------------------------------------------------------------------
    # Weekly leaderboard
    # -------------------------------------------------------------------
    @tasks.loop(time=dt.time(hour=0, tzinfo=dt.UTC))
    async def leaderboard_loop(self):
        """Run the leaderboard cycle once a week."""
        now = utcnow()
        if not is_leaderboard_day(now, self.bot.cfg.leaderboard_weekday):
            return

        logger.info("Running weekly leaderboard…")
        try:
            result = await self.bot.leaderboard.run(self.bot)
        except CycleInProgressError:
            logger.warning("Weekly leaderboard skipped: a run is already in progress")
            return
        except Exception:
            logger.exception("Weekly leaderboard failed", extra={"task": "leaderboard"})
            return
        logger.info("Weekly leaderboard finished: %s", result.summary())

    @leaderboard_loop.before_loop
    async def _wait_leaderboard(self):
        await self.bot.wait_until_ready()

    # -------------------------------------------------------------------
    # Snapshot persistence
    # -------------------------------------------------------------------
    @tasks.loop(minutes=PERSIST_INTERVAL_MINUTES)
    async def persist_loop(self):
        if self.bot.store.flush(force=True):
            logger.info("Periodic data save completed")

    @persist_loop.before_loop
    async def _wait_persist(self):
        await self.bot.wait_until_ready()

    # -------------------------------------------------------------------
    # Cooldown pruning
    # -------------------------------------------------------------------
    @tasks.loop(minutes=5)
    async def cooldown_loop(self):
        self.bot.cooldowns.prune()

    @cooldown_loop.before_loop
    async def _wait_cooldown(self):
        await self.bot.wait_until_ready()


async def setup(bot: TallyBot) -> None:
    await bot.add_cog(PeriodicTasks(bot))
