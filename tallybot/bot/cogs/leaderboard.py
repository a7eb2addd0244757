"""
tallybot.bot.cogs.leaderboard — ``!testlb``
============================================

Runs the weekly leaderboard cycle on demand.  Administrator only.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from tallybot.engine.commands import ParsedCommand
from tallybot.services.leaderboard_service import CycleInProgressError

if TYPE_CHECKING:
    from tallybot.bot.core import TallyBot

logger = logging.getLogger(__name__)


class Leaderboard(commands.Cog, name="Leaderboard"):
    """Manual trigger for the leaderboard cycle."""

    def __init__(self, bot: TallyBot) -> None:
        self.bot = bot

    async def cog_load(self) -> None:
        self.bot.router.register("testlb", self.testlb, permission="administrator")

    async def cog_unload(self) -> None:
        self.bot.router.unregister("testlb")

    async def testlb(self, message: discord.Message, command: ParsedCommand) -> None:
        try:
            result = await self.bot.leaderboard.run(self.bot)
        except CycleInProgressError:
            await message.reply("⏳ A leaderboard run is already in progress.")
            return

        logger.info("Manual leaderboard run by %s: %s", message.author, result.status)
        if result.ok:
            try:
                await message.add_reaction("✅")
            except discord.HTTPException:
                logger.debug("Could not react to message %s", message.id)
        else:
            await message.reply(f"❌ {result.summary()}")


async def setup(bot: TallyBot) -> None:
    await bot.add_cog(Leaderboard(bot))
