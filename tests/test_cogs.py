"""
tests/test_cogs.py — Chat Command Handlers
===========================================

Cogs are instantiated against the stand-in bot and their handlers called
directly with a parsed command.
"""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import (
    SUGGESTIONS_CHANNEL_ID,
    make_bot,
    make_channel,
    make_member,
    make_role,
    run_async,
)

from tallybot.bot.cogs.activity import Activity
from tallybot.bot.cogs.leaderboard import Leaderboard
from tallybot.bot.cogs.moderation import Moderation, mentioned_member
from tallybot.bot.cogs.suggestions import Suggestions
from tallybot.bot.router import CommandRouter
from tallybot.engine.commands import parse_command
from tallybot.engine.cooldown import CooldownTracker
from tallybot.services.moderation_service import ModerationError

TARGET_ID = 123456789012345678


@pytest.fixture
def bot(tmp_path, guild):
    bot = make_bot(tmp_path, guild=guild)
    bot.router = CommandRouter("!", CooldownTracker())
    return bot


def _message(content: str, *, guild=None, mentions=()):
    message = MagicMock()
    message.content = content
    message.author = make_member(1, name="mod", top_position=10)
    message.author.display_avatar.url = "https://cdn.example/avatar.png"
    message.guild = guild
    message.mentions = list(mentions)
    message.reply = AsyncMock()
    message.add_reaction = AsyncMock()
    message.delete = AsyncMock()
    message.channel = make_channel(5, guild=guild)
    return message


class TestActivity:
    def test_counts_guild_messages(self, bot, guild):
        cog = Activity(bot)
        run_async(cog.on_message(_message("hi", guild=guild)))
        run_async(cog.on_message(_message("!help", guild=guild)))
        assert dict(bot.store.snapshot().counts) == {"1": 2}

    def test_ignores_bots_and_dms(self, bot, guild):
        cog = Activity(bot)
        from_bot = _message("beep", guild=guild)
        from_bot.author.bot = True
        run_async(cog.on_message(from_bot))
        run_async(cog.on_message(_message("psst", guild=None)))
        assert len(bot.store) == 0


class TestSuggestions:
    def test_posts_embed_with_votes(self, tmp_path, guild):
        channel = make_channel(SUGGESTIONS_CHANNEL_ID, guild=guild, name="suggestions")
        posted = MagicMock()
        posted.add_reaction = AsyncMock()
        channel.send.return_value = posted
        bot = make_bot(tmp_path, guild=guild, channels={SUGGESTIONS_CHANNEL_ID: channel})
        bot.router = CommandRouter("!", CooldownTracker())
        message = _message("!suggestion add a music channel", guild=guild)

        run_async(Suggestions(bot).suggestion(message, parse_command(message.content)))

        embed = channel.send.call_args.kwargs["embed"]
        assert embed.description == "add a music channel"
        assert [c.args[0] for c in posted.add_reaction.call_args_list] == ["✅", "❌"]
        message.add_reaction.assert_awaited_once_with("✅")
        message.delete.assert_awaited_once()

    def test_empty_suggestion(self, bot, guild):
        message = _message("!suggestion", guild=guild)
        run_async(Suggestions(bot).suggestion(message, parse_command(message.content)))
        reply = message.reply.call_args
        assert reply.args[0].startswith("❌ Please provide a suggestion!")
        assert reply.kwargs["delete_after"] == 5.0

    def test_too_long(self, bot, guild):
        message = _message("!suggestion " + "x" * 1001, guild=guild)
        run_async(Suggestions(bot).suggestion(message, parse_command(message.content)))
        assert "too long" in message.reply.call_args.args[0]

    def test_missing_channel(self, bot, guild):
        message = _message("!suggestion more memes", guild=guild)
        run_async(Suggestions(bot).suggestion(message, parse_command(message.content)))
        message.reply.assert_awaited_once_with("❌ Suggestions channel not found!")
        message.delete.assert_not_called()


class TestModerationCommands:
    def test_requires_mention(self, guild):
        with pytest.raises(ModerationError, match="Please mention a user to kick!"):
            mentioned_member(_message("!kick", guild=guild), "kick")

    def test_timeout_with_minutes(self, bot, guild):
        target = make_member(TARGET_ID, name="target")
        message = _message(f"!timeout <@{TARGET_ID}> 30 spamming links", guild=guild, mentions=[target])

        run_async(Moderation(bot).timeout(message, parse_command(message.content)))

        args = target.timeout.call_args
        assert args.args[0] == timedelta(minutes=30)
        assert args.kwargs["reason"] == "spamming links"

    def test_timeout_without_minutes_uses_default(self, bot, guild):
        target = make_member(TARGET_ID, name="target")
        message = _message(f"!timeout <@{TARGET_ID}> spamming", guild=guild, mentions=[target])

        run_async(Moderation(bot).timeout(message, parse_command(message.content)))

        args = target.timeout.call_args
        assert args.args[0] == timedelta(minutes=10)
        assert args.kwargs["reason"] == "spamming"

    def test_timeout_zero_rejected(self, bot, guild):
        target = make_member(TARGET_ID, name="target")
        message = _message(f"!timeout <@{TARGET_ID}> 0", guild=guild, mentions=[target])

        with pytest.raises(ModerationError):
            run_async(Moderation(bot).timeout(message, parse_command(message.content)))
        target.timeout.assert_not_called()

    def test_mute_announces_created_role(self, bot, guild):
        target = make_member(TARGET_ID, name="target")
        guild.create_role.return_value = make_role(1, name="Muted")
        message = _message(f"!mute <@{TARGET_ID}>", guild=guild, mentions=[target])

        run_async(Moderation(bot).mute(message, parse_command(message.content)))

        message.channel.send.assert_awaited_once()
        assert "Created `Muted` role" in message.channel.send.call_args.args[0]
        assert message.reply.call_args.args[0].startswith("✅ Muted target")

    def test_clear_confirmation_self_deletes(self, bot, guild):
        message = _message("!clear 2", guild=guild)
        message.channel.purge.return_value = [object(), object()]

        run_async(Moderation(bot).clear(message, parse_command(message.content)))

        message.channel.send.assert_awaited_once_with("✅ Deleted 2 messages.", delete_after=3.0)

    def test_registers_with_permissions(self, bot):
        run_async(Moderation(bot).cog_load())
        assert bot.router.commands == [
            "ban", "clear", "kick", "mute", "timeout", "unban", "unmute", "untimeout",
        ]


class TestLeaderboardCommand:
    def test_busy_cycle_replies(self, bot, guild):
        bot.leaderboard._running = True
        message = _message("!testlb", guild=guild)
        run_async(Leaderboard(bot).testlb(message, parse_command(message.content)))
        message.reply.assert_awaited_once_with("⏳ A leaderboard run is already in progress.")

    def test_failed_cycle_replies_with_summary(self, bot, guild):
        message = _message("!testlb", guild=guild)
        run_async(Leaderboard(bot).testlb(message, parse_command(message.content)))
        message.reply.assert_awaited_once_with("❌ Leaderboard channel not found")
