"""
tallybot.bot.cogs.suggestions — ``!suggestion <text>``
=======================================================

Reposts a member's suggestion as an embed in the suggestions channel,
adds ✅/❌ voting reactions, and removes the original message.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from tallybot.constants import EPHEMERAL_REPLY_SECONDS, SUGGESTION_MAX_LENGTH
from tallybot.engine.commands import ParsedCommand
from tallybot.services.embeds import build_suggestion_embed
from tallybot.services.platform import PlatformCallError, call_platform

if TYPE_CHECKING:
    from tallybot.bot.core import TallyBot

logger = logging.getLogger(__name__)

VOTE_REACTIONS = ("✅", "❌")


class Suggestions(commands.Cog, name="Suggestions"):
    """Collects member suggestions into the review channel."""

    def __init__(self, bot: TallyBot) -> None:
        self.bot = bot

    async def cog_load(self) -> None:
        self.bot.router.register("suggestion", self.suggestion)

    async def cog_unload(self) -> None:
        self.bot.router.unregister("suggestion")

    async def suggestion(self, message: discord.Message, command: ParsedCommand) -> None:
        prefix = self.bot.router.prefix
        text = command.text
        if not text:
            await message.reply(
                f"❌ Please provide a suggestion! Usage: `{prefix}suggestion Your suggestion here`",
                delete_after=EPHEMERAL_REPLY_SECONDS,
            )
            return
        if len(text) > SUGGESTION_MAX_LENGTH:
            await message.reply(
                f"❌ Suggestion too long! Please keep it under {SUGGESTION_MAX_LENGTH} characters.",
                delete_after=EPHEMERAL_REPLY_SECONDS,
            )
            return

        channel = await self.bot.resolve_channel(self.bot.cfg.suggestions_channel_id)
        if channel is None:
            await message.reply("❌ Suggestions channel not found!")
            return

        author = message.author
        embed = build_suggestion_embed(
            text,
            author_name=author.display_name,
            author_id=author.id,
            avatar_url=author.display_avatar.url,
        )
        timeout = self.bot.cfg.platform_timeout_seconds
        try:
            posted = await call_platform(
                channel.send(embed=embed), what="post suggestion", timeout=timeout,
            )
            for emoji in VOTE_REACTIONS:
                await call_platform(
                    posted.add_reaction(emoji), what="add vote reaction", timeout=timeout,
                )
        except PlatformCallError:
            await message.reply("❌ Couldn't post your suggestion. Please try again later.")
            return

        logger.info("Suggestion from %s posted to #%s", author, getattr(channel, "name", channel.id))
        try:
            await message.add_reaction("✅")
            await message.delete()
        except discord.HTTPException:
            logger.debug("Could not acknowledge or delete suggestion message %s", message.id)


async def setup(bot: TallyBot) -> None:
    await bot.add_cog(Suggestions(bot))
