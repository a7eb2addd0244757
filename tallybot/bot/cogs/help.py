"""
tallybot.bot.cogs.help — ``!help``
===================================
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from tallybot.engine.commands import ParsedCommand
from tallybot.services.embeds import build_help_embed

if TYPE_CHECKING:
    from tallybot.bot.core import TallyBot


class Help(commands.Cog, name="Help"):
    """Permission-aware command list."""

    def __init__(self, bot: TallyBot) -> None:
        self.bot = bot

    async def cog_load(self) -> None:
        self.bot.router.register("help", self.help)

    async def cog_unload(self) -> None:
        self.bot.router.unregister("help")

    async def help(self, message: discord.Message, command: ParsedCommand) -> None:
        perms = message.author.guild_permissions
        embed = build_help_embed(
            self.bot.router.prefix,
            is_admin=perms.administrator,
            is_moderator=perms.kick_members or perms.ban_members or perms.moderate_members,
        )
        await message.reply(embed=embed)


async def setup(bot: TallyBot) -> None:
    await bot.add_cog(Help(bot))
