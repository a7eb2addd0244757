"""
tests/conftest.py — Shared Test Fixtures
=========================================

Discord objects are stand-ins built from ``unittest.mock``; nothing here
talks to Discord.  Async code is driven with :func:`run_async` rather
than an async pytest plugin.
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from tallybot.config import TallyConfig
from tallybot.engine.counter_store import CounterStore
from tallybot.engine.mute_ledger import MuteLedger
from tallybot.services.leaderboard_service import LeaderboardCycle
from tallybot.services.moderation_service import ModerationService

GUILD_ID = 900000000000000000
OWNER_ID = 900000000000000001
LEADERBOARD_CHANNEL_ID = 910000000000000000
SUGGESTIONS_CHANNEL_ID = 910000000000000001
LOGS_CHANNEL_ID = 910000000000000002
REWARD_ROLE_ID = 920000000000000000
DASHBOARD_SECRET = "test-dashboard-secret"


def run_async(coro):
    """Run an async coroutine to completion in a fresh event loop."""
    return asyncio.run(coro)


def http_error(cls: type[discord.HTTPException] = discord.Forbidden, status: int = 403):
    """Build a discord.py HTTP exception without a real response."""
    response = MagicMock(status=status, reason="Forbidden")
    return cls(response, "Missing Permissions")


# ---------------------------------------------------------------------------
# Discord stand-ins
# ---------------------------------------------------------------------------
def make_role(role_id: int, *, position: int = 1, name: str = "role", members=None):
    return SimpleNamespace(id=role_id, position=position, name=name, members=list(members or []))


def make_member(
    user_id: int,
    *,
    name: str = "member",
    roles: list | None = None,
    top_position: int = 1,
    permissions: dict | None = None,
) -> MagicMock:
    member = MagicMock(spec=discord.Member)
    member.id = user_id
    member.bot = False
    member.name = name
    member.display_name = name
    member.__str__.return_value = name
    member.roles = list(roles or [])
    member.top_role = make_role(user_id + 1, position=top_position)
    member.guild_permissions = SimpleNamespace(
        **{
            "administrator": False,
            "kick_members": False,
            "ban_members": False,
            "moderate_members": False,
            "manage_messages": False,
            **(permissions or {}),
        }
    )
    for method in ("kick", "ban", "timeout", "edit", "add_roles", "remove_roles"):
        setattr(member, method, AsyncMock())
    return member


def make_guild(*, roles: list | None = None, members: list | None = None) -> MagicMock:
    guild = MagicMock()
    guild.id = GUILD_ID
    guild.owner_id = OWNER_ID
    guild.default_role = make_role(GUILD_ID, position=0, name="@everyone")
    guild.roles = [guild.default_role, *(roles or [])]
    guild.members = list(members or [])
    guild.member_count = len(guild.members)
    guild.chunked = True
    guild.channels = []

    def _get_role(role_id):
        return next((r for r in guild.roles if r.id == role_id), None)

    def _get_member(user_id):
        return next((m for m in guild.members if m.id == user_id), None)

    guild.get_role = _get_role
    guild.get_member = _get_member
    guild.fetch_member = AsyncMock(side_effect=http_error(discord.NotFound, 404))
    guild.create_role = AsyncMock()
    guild.unban = AsyncMock()
    guild.chunk = AsyncMock()
    return guild


def make_channel(channel_id: int, *, guild=None, name: str = "general") -> MagicMock:
    channel = MagicMock()
    channel.id = channel_id
    channel.name = name
    channel.guild = guild
    channel.send = AsyncMock()
    channel.purge = AsyncMock(return_value=[])
    channel.set_permissions = AsyncMock()
    return channel


def make_bot(tmp_path, *, guild=None, channels: dict | None = None, **cfg_overrides):
    """A lightweight stand-in for TallyBot with real engine/services."""
    cfg_values = {
        "leaderboard_channel_id": LEADERBOARD_CHANNEL_ID,
        "suggestions_channel_id": SUGGESTIONS_CHANNEL_ID,
        "logs_channel_id": LOGS_CHANNEL_ID,
        "reward_role_id": REWARD_ROLE_ID,
        "dashboard_secret": DASHBOARD_SECRET,
        "platform_timeout_seconds": 2.0,
    }
    cfg_values.update(cfg_overrides)
    store = CounterStore(tmp_path / "leaderboard.json")
    ledger = MuteLedger()
    channels = channels if channels is not None else {}

    async def _resolve_channel(channel_id):
        return channels.get(channel_id)

    bot = SimpleNamespace(
        cfg=TallyConfig(**cfg_values),
        store=store,
        mute_ledger=ledger,
        leaderboard=LeaderboardCycle(store),
        primary_guild=guild,
        user="Tallybot#0001",
        uptime_seconds=12.5,
        is_ready=lambda: True,
        resolve_channel=_resolve_channel,
        channels=channels,
    )
    bot.moderation = ModerationService(bot, ledger)
    return bot


@pytest.fixture
def guild():
    return make_guild()


@pytest.fixture
def logs_channel():
    return make_channel(LOGS_CHANNEL_ID, name="mod-logs")
