"""
tallybot.services.embeds — Discord embed builders
==================================================

All embed construction lives here so cogs, routes, and services only
supply data — no layout concerns.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import discord

if TYPE_CHECKING:
    from tallybot.services.audit import AuditRecord

# Audit colours per action
AUDIT_STYLES: dict[str, tuple[str, discord.Color]] = {
    "kick": ("\U0001f462 User Kicked", discord.Color.orange()),
    "ban": ("\U0001f528 User Banned", discord.Color.red()),
    "unban": ("✅ User Unbanned", discord.Color.green()),
    "timeout": ("⏲️ User Timed Out", discord.Color.yellow()),
    "untimeout": ("✅ Timeout Removed", discord.Color.green()),
    "mute": ("\U0001f507 User Muted", discord.Color.greyple()),
    "unmute": ("\U0001f50a User Unmuted", discord.Color.green()),
    "clear": ("\U0001f5d1️ Messages Cleared", discord.Color.blue()),
}


def build_leaderboard_embed(
    description: str,
    *,
    image_url: str | None = None,
    now: datetime | None = None,
) -> discord.Embed:
    """Weekly results embed; *description* comes from ``ranking.format_detail_block``."""
    now = now or datetime.now(UTC)
    embed = discord.Embed(
        title="\U0001f3c6 Weekly Leaderboard Winners",
        description=description,
        color=discord.Color.blue(),
    )
    if image_url:
        embed.set_image(url=image_url)
    embed.set_footer(text=f"Leaderboard | {now:%d/%m/%Y %H:%M}")
    return embed


def build_suggestion_embed(
    text: str,
    *,
    author_name: str,
    author_id: int,
    avatar_url: str | None,
) -> discord.Embed:
    embed = discord.Embed(
        title="\U0001f4a1 New Suggestion",
        description=text,
        color=discord.Color.yellow(),
        timestamp=datetime.now(UTC),
    )
    embed.set_author(name=author_name, icon_url=avatar_url)
    embed.set_footer(text=f"User ID: {author_id}")
    return embed


def build_announcement_embed(message: str) -> discord.Embed:
    embed = discord.Embed(
        title="\U0001f4e2 Dashboard Announcement",
        description=message,
        color=discord.Color.blue(),
        timestamp=datetime.now(UTC),
    )
    embed.set_footer(text="Sent via Web Dashboard")
    return embed


def build_audit_embed(record: AuditRecord) -> discord.Embed:
    """Moderation log entry for the logs channel."""
    title, color = AUDIT_STYLES.get(
        record.action, (f"\U0001f6e1️ {record.action.title()}", discord.Color.dark_grey())
    )
    embed = discord.Embed(title=title, color=color, timestamp=record.timestamp)

    if record.action == "unban":
        embed.add_field(name="User ID", value=record.target_id, inline=True)
    elif record.action == "clear":
        embed.add_field(name="Channel", value=record.target, inline=True)
    else:
        embed.add_field(
            name="User", value=f"{record.target} ({record.target_id})", inline=True,
        )

    for name, value in record.details.items():
        embed.add_field(name=name, value=value, inline=True)
    embed.add_field(name="Moderator", value=record.actor, inline=True)
    if record.reason:
        embed.add_field(name="Reason", value=record.reason, inline=False)
    return embed


def build_help_embed(prefix: str, *, is_admin: bool, is_moderator: bool) -> discord.Embed:
    """Command list filtered by what the caller is allowed to run."""
    embed = discord.Embed(
        title="\U0001f916 Bot Commands",
        color=discord.Color.blue(),
        timestamp=datetime.now(UTC),
    )
    embed.set_footer(text="Commands shown based on your permissions")
    embed.add_field(
        name="\U0001f4a1 Suggestions",
        value=f"`{prefix}suggestion <text>` - Submit a suggestion",
        inline=False,
    )
    embed.add_field(
        name="ℹ️ Info",
        value=f"`{prefix}help` - Show this help message",
        inline=False,
    )
    if is_admin:
        embed.add_field(
            name="\U0001f4ca Admin Commands",
            value=f"`{prefix}testlb` - Run the leaderboard now",
            inline=False,
        )
    if is_moderator or is_admin:
        usage = [
            "kick @user [reason]",
            "ban @user [reason]",
            "unban <userid>",
            "timeout @user [minutes] [reason]",
            "untimeout @user",
            "mute @user [reason]",
            "unmute @user",
            "clear <amount>",
        ]
        embed.add_field(
            name="\U0001f6e1️ Moderation Commands",
            value="\n".join(f"`{prefix}{u}`" for u in usage),
            inline=False,
        )
    return embed
