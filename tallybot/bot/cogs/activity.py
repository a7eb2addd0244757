"""
tallybot.bot.cogs.activity — Message Counting
==============================================

Every guild message from a human adds one to its author's weekly tally.
Commands count too, same as any other message.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

if TYPE_CHECKING:
    from tallybot.bot.core import TallyBot

logger = logging.getLogger(__name__)


class Activity(commands.Cog, name="Activity"):
    """Feeds the counter store from on_message."""

    def __init__(self, bot: TallyBot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot or message.guild is None:
            return
        try:
            self.bot.store.record_activity(message.author.id)
        except Exception:
            logger.exception(
                "Error counting message %s from user %s",
                message.id, message.author.id,
                extra={"event_type": "message", "user_id": message.author.id},
            )


async def setup(bot: TallyBot) -> None:
    await bot.add_cog(Activity(bot))
