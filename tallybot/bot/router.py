"""
tallybot.bot.router — Prefix Command Router
============================================

Turns ``!name arg arg…`` messages into handler calls.

Pipeline per message:

1. Ignore bots, DMs, and anything without the prefix.
2. Look the command up; unknown names are ignored silently.
3. Cooldown: one use per user per command every few seconds.
4. Permission gate (Discord guild permission named at registration).
5. Run the handler.  :class:`ModerationError` becomes a ``❌`` reply; any
   other exception is logged and answered with a generic error.

Cogs register their handlers in ``cog_load`` and remove them in
``cog_unload``, so reloading a cog never leaves a stale handler behind.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import discord

from tallybot.constants import EPHEMERAL_REPLY_SECONDS
from tallybot.engine.commands import ParsedCommand, parse_command
from tallybot.engine.cooldown import CooldownTracker
from tallybot.services.moderation_service import ModerationError

logger = logging.getLogger(__name__)

Handler = Callable[[discord.Message, ParsedCommand], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class Route:
    name: str
    handler: Handler
    permission: str | None = None  # discord.Permissions attribute, e.g. "kick_members"


def permission_label(permission: str) -> str:
    """``"kick_members"`` → ``"Kick Members"``."""
    return permission.replace("_", " ").title()


def has_permission(member: discord.abc.User, permission: str | None) -> bool:
    if permission is None:
        return True
    perms = getattr(member, "guild_permissions", None)
    return bool(perms is not None and getattr(perms, permission, False))


class CommandRouter:
    """Dispatches prefixed chat commands to registered handlers."""

    def __init__(self, prefix: str, cooldowns: CooldownTracker) -> None:
        self.prefix = prefix
        self.cooldowns = cooldowns
        self._routes: dict[str, Route] = {}

    # -------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------
    def register(self, name: str, handler: Handler, *, permission: str | None = None) -> None:
        name = name.lower()
        if name in self._routes:
            raise ValueError(f"Command already registered: {name}")
        self._routes[name] = Route(name=name, handler=handler, permission=permission)

    def unregister(self, name: str) -> None:
        self._routes.pop(name.lower(), None)

    def __contains__(self, name: object) -> bool:
        return name in self._routes

    @property
    def commands(self) -> list[str]:
        return sorted(self._routes)

    # -------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------
    async def route(self, message: discord.Message) -> bool:
        """Handle *message* if it's a known command.  Returns ``True`` if dispatched."""
        if message.author.bot or message.guild is None:
            return False

        parsed = parse_command(message.content, self.prefix)
        if parsed is None:
            return False
        route = self._routes.get(parsed.name)
        if route is None:
            return False

        wait = self.cooldowns.check_and_stamp(message.author.id, parsed.name)
        if wait > 0:
            await self._reply(
                message,
                f"⏰ Please wait {wait:.1f} seconds before using this command again.",
                delete_after=EPHEMERAL_REPLY_SECONDS,
            )
            return False

        if not has_permission(message.author, route.permission):
            await self._reply(
                message,
                f"❌ You need {permission_label(route.permission or '')} "
                "permission to use this command.",
            )
            return False

        try:
            await route.handler(message, parsed)
        except ModerationError as exc:
            await self._reply(message, f"❌ {exc.message}")
        except Exception:
            logger.exception(
                "Error executing command %s from user %s",
                parsed.name, message.author.id,
                extra={"command": parsed.name, "user_id": message.author.id},
            )
            await self._reply(message, "❌ An error occurred while executing this command.")
        return True

    async def _reply(
        self, message: discord.Message, content: str, *, delete_after: float | None = None,
    ) -> None:
        try:
            await message.reply(content, delete_after=delete_after)
        except discord.HTTPException:
            logger.warning("Could not reply to message %s in channel %s", message.id, message.channel.id)
