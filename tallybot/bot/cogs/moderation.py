"""
tallybot.bot.cogs.moderation — Moderation Chat Commands
========================================================

``!kick @user [reason]``, ``!ban @user [reason]``, ``!unban <id>``,
``!timeout @user [minutes] [reason]``, ``!untimeout @user``,
``!mute @user [reason]``, ``!unmute @user``, ``!clear <amount>``.

Permission gates live on the router registrations; argument checks,
role hierarchy, and the Discord calls live in
:mod:`tallybot.services.moderation_service`.  Any
:class:`ModerationError` raised here is turned into a ``❌`` reply by the
router.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from tallybot.constants import CLEAR_CONFIRM_SECONDS, MUTED_ROLE_NAME
from tallybot.engine.commands import ParsedCommand
from tallybot.services.moderation_service import Actor, ModerationError

if TYPE_CHECKING:
    from tallybot.bot.core import TallyBot

# command → required guild permission
PERMISSIONS: dict[str, str] = {
    "kick": "kick_members",
    "ban": "ban_members",
    "unban": "ban_members",
    "timeout": "moderate_members",
    "untimeout": "moderate_members",
    "mute": "moderate_members",
    "unmute": "moderate_members",
    "clear": "manage_messages",
}


def mentioned_member(message: discord.Message, verb: str) -> discord.Member:
    """First mentioned guild member, or a ModerationError asking for one."""
    for user in message.mentions:
        if isinstance(user, discord.Member):
            return user
    raise ModerationError(f"Please mention a user to {verb}!")


def reason_from(args: tuple[str, ...], start: int) -> str | None:
    return " ".join(args[start:]) or None


class Moderation(commands.Cog, name="Moderation"):
    """Chat front-end for the moderation service."""

    def __init__(self, bot: TallyBot) -> None:
        self.bot = bot

    async def cog_load(self) -> None:
        handlers = {
            "kick": self.kick,
            "ban": self.ban,
            "unban": self.unban,
            "timeout": self.timeout,
            "untimeout": self.untimeout,
            "mute": self.mute,
            "unmute": self.unmute,
            "clear": self.clear,
        }
        for name, handler in handlers.items():
            self.bot.router.register(name, handler, permission=PERMISSIONS[name])

    async def cog_unload(self) -> None:
        for name in PERMISSIONS:
            self.bot.router.unregister(name)

    # -------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------
    async def kick(self, message: discord.Message, command: ParsedCommand) -> None:
        target = mentioned_member(message, "kick")
        result = await self.bot.moderation.kick(
            message.guild, Actor.from_member(message.author), target, reason_from(command.args, 1),
        )
        await message.reply(f"✅ {result.message}")

    async def ban(self, message: discord.Message, command: ParsedCommand) -> None:
        target = mentioned_member(message, "ban")
        result = await self.bot.moderation.ban(
            message.guild, Actor.from_member(message.author), target, reason_from(command.args, 1),
        )
        await message.reply(f"✅ {result.message}")

    async def unban(self, message: discord.Message, command: ParsedCommand) -> None:
        if not command.args:
            raise ModerationError("Please provide a user ID to unban.")
        result = await self.bot.moderation.unban(
            message.guild, Actor.from_member(message.author), command.args[0],
            reason_from(command.args, 1),
        )
        await message.reply(f"✅ {result.message}")

    async def timeout(self, message: discord.Message, command: ParsedCommand) -> None:
        target = mentioned_member(message, "timeout")
        # "!timeout @user spamming" → default duration, reason "spamming"
        minutes: str | None = None
        reason_start = 1
        if len(command.args) > 1 and command.args[1].lstrip("-").isdigit():
            minutes = command.args[1]
            reason_start = 2
        result = await self.bot.moderation.timeout_member(
            message.guild, Actor.from_member(message.author), target,
            minutes, reason_from(command.args, reason_start),
        )
        await message.reply(f"✅ {result.message}")

    async def untimeout(self, message: discord.Message, command: ParsedCommand) -> None:
        target = mentioned_member(message, "remove timeout")
        result = await self.bot.moderation.untimeout_member(
            message.guild, Actor.from_member(message.author), target,
        )
        await message.reply(f"✅ {result.message}")

    async def mute(self, message: discord.Message, command: ParsedCommand) -> None:
        target = mentioned_member(message, "mute")
        result = await self.bot.moderation.mute(
            message.guild, Actor.from_member(message.author), target, reason_from(command.args, 1),
        )
        if result.data.get("roleCreated"):
            await message.channel.send(
                f"\U0001f527 Created `{MUTED_ROLE_NAME}` role with proper permissions."
            )
        await message.reply(f"✅ {result.message}")

    async def unmute(self, message: discord.Message, command: ParsedCommand) -> None:
        target = mentioned_member(message, "unmute")
        result = await self.bot.moderation.unmute(
            message.guild, Actor.from_member(message.author), target,
        )
        await message.reply(f"✅ {result.message}")

    async def clear(self, message: discord.Message, command: ParsedCommand) -> None:
        amount = command.args[0] if command.args else None
        result = await self.bot.moderation.clear(
            message.channel, Actor.from_member(message.author), amount,
        )
        # The command message itself may be among the purged ones.
        await message.channel.send(f"✅ {result.message}", delete_after=CLEAR_CONFIRM_SECONDS)


async def setup(bot: TallyBot) -> None:
    await bot.add_cog(Moderation(bot))
