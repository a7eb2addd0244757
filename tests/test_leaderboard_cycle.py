"""
tests/test_leaderboard_cycle.py — Weekly Leaderboard Cycle
===========================================================

Drives :class:`LeaderboardCycle` against mock Discord objects and a real
on-disk :class:`CounterStore`.
"""

from __future__ import annotations

import asyncio
import json

import discord
import pytest
from conftest import (
    LEADERBOARD_CHANNEL_ID,
    REWARD_ROLE_ID,
    http_error,
    make_bot,
    make_channel,
    make_guild,
    make_member,
    make_role,
    run_async,
)

from tallybot.services.leaderboard_service import (
    NO_ACTIVITY_MESSAGE,
    CycleInProgressError,
)


def _setup(tmp_path, *, holders=(), members=(), counts=()):
    reward = make_role(REWARD_ROLE_ID, position=5, name="Weekly Winner", members=holders)
    guild = make_guild(roles=[reward], members=[*holders, *members])
    channel = make_channel(LEADERBOARD_CHANNEL_ID, guild=guild, name="leaderboard")
    bot = make_bot(tmp_path, guild=guild, channels={LEADERBOARD_CHANNEL_ID: channel})
    for uid in counts:
        bot.store.record_activity(uid)
    return bot, guild, channel, reward


class TestCompletedCycle:
    def test_ranks_announces_rewards_and_resets(self, tmp_path):
        old_holder = make_member(111111111111111111, name="last-week")
        winner = make_member(222222222222222222, name="winner")
        runner_up = make_member(333333333333333333, name="runner-up")
        bot, guild, channel, reward = _setup(
            tmp_path,
            holders=[old_holder],
            members=[winner, runner_up],
            counts=[winner.id, runner_up.id, winner.id],
        )

        result = run_async(bot.leaderboard.run(bot))

        assert result.status == "completed"
        assert [(e.user_id, e.count) for e in result.ranking] == [
            (str(winner.id), 2), (str(runner_up.id), 1),
        ]
        assert result.total == 3
        old_holder.remove_roles.assert_awaited_once()
        assert old_holder.remove_roles.call_args.args[0] is reward
        winner.add_roles.assert_awaited_once()
        assert result.winner_id == str(winner.id)
        assert result.winner_rewarded is True

        assert len(bot.store) == 0
        saved = json.loads((tmp_path / "leaderboard.json").read_text(encoding="utf-8"))
        assert saved == {}

    def test_announcement_pings_users_only(self, tmp_path):
        winner = make_member(222222222222222222)
        bot, _, channel, _ = _setup(tmp_path, members=[winner], counts=[winner.id])

        run_async(bot.leaderboard.run(bot))

        kwargs = channel.send.call_args.kwargs
        assert f"<@{winner.id}>" in kwargs["content"]
        mentions = kwargs["allowed_mentions"]
        assert mentions.users is True
        assert mentions.everyone is False
        assert mentions.roles is False
        embed = kwargs["embed"]
        assert isinstance(embed, discord.Embed)
        assert "Total Messages This Week:** 1" in embed.description

    def test_single_message_user_still_ranked(self, tmp_path):
        a = make_member(100000000000000001, name="a")
        b = make_member(100000000000000002, name="b")
        bot, _, _, _ = _setup(tmp_path, members=[a, b], counts=[a.id, b.id, b.id])

        result = run_async(bot.leaderboard.run(bot))

        assert [e.user_id for e in result.ranking] == [str(b.id), str(a.id)]
        assert result.winner_id == str(b.id)

    def test_winner_outside_cache_is_fetched(self, tmp_path):
        winner = make_member(444444444444444444)
        bot, guild, _, _ = _setup(tmp_path, counts=[winner.id])
        guild.fetch_member.side_effect = None
        guild.fetch_member.return_value = winner

        result = run_async(bot.leaderboard.run(bot))

        guild.fetch_member.assert_awaited_once_with(winner.id)
        assert result.winner_rewarded is True

    def test_winner_who_left_still_resets(self, tmp_path):
        bot, _, _, _ = _setup(tmp_path, counts=[555555555555555555])

        result = run_async(bot.leaderboard.run(bot))

        assert result.status == "completed"
        assert result.winner_rewarded is False
        assert len(bot.store) == 0

    def test_strip_failure_does_not_abort(self, tmp_path):
        stuck = make_member(111111111111111111, name="stuck")
        stuck.remove_roles.side_effect = http_error()
        freed = make_member(111111111111111112, name="freed")
        winner = make_member(222222222222222222)
        bot, _, _, _ = _setup(
            tmp_path, holders=[stuck, freed], members=[winner], counts=[winner.id],
        )

        result = run_async(bot.leaderboard.run(bot))

        assert result.status == "completed"
        assert result.roles_removed == 1
        assert result.role_failures == [str(stuck.id)]
        freed.remove_roles.assert_awaited_once()
        winner.add_roles.assert_awaited_once()


class TestEmptyCycle:
    def test_empty_tally_is_not_reset(self, tmp_path):
        holder = make_member(111111111111111111)
        bot, _, channel, _ = _setup(tmp_path, holders=[holder])

        result = run_async(bot.leaderboard.run(bot))

        assert result.status == "empty"
        assert result.ok
        channel.send.assert_awaited_once_with(NO_ACTIVITY_MESSAGE)
        # Previous holder still loses the role; nobody gains it.
        holder.remove_roles.assert_awaited_once()
        holder.add_roles.assert_not_called()
        assert not (tmp_path / "leaderboard.json").exists()


class TestAbortedCycle:
    def test_missing_channel(self, tmp_path):
        bot = make_bot(tmp_path, channels={})
        bot.store.record_activity(1)

        result = run_async(bot.leaderboard.run(bot))

        assert result.status == "no_destination"
        assert not result.ok
        assert len(bot.store) == 1

    def test_delivery_failure_keeps_tally(self, tmp_path):
        winner = make_member(222222222222222222)
        bot, _, channel, _ = _setup(tmp_path, members=[winner], counts=[winner.id, winner.id])
        channel.send.side_effect = http_error(discord.HTTPException, 500)

        result = run_async(bot.leaderboard.run(bot))

        assert result.status == "delivery_failed"
        winner.add_roles.assert_not_called()
        assert dict(bot.store.snapshot().counts) == {str(winner.id): 2}

    def test_running_flag_clears_after_error(self, tmp_path):
        bot = make_bot(tmp_path)

        async def _boom(channel_id):
            raise RuntimeError("boom")

        bot.resolve_channel = _boom
        with pytest.raises(RuntimeError):
            run_async(bot.leaderboard.run(bot))
        assert bot.leaderboard.running is False


class TestConcurrency:
    def test_second_trigger_is_rejected(self, tmp_path):
        winner = make_member(222222222222222222)
        bot, _, channel, _ = _setup(tmp_path, members=[winner], counts=[winner.id])
        resolve = bot.resolve_channel

        async def _slow_resolve(channel_id):
            await asyncio.sleep(0)
            return await resolve(channel_id)

        bot.resolve_channel = _slow_resolve

        async def _both():
            return await asyncio.gather(
                bot.leaderboard.run(bot), bot.leaderboard.run(bot), return_exceptions=True,
            )

        first, second = run_async(_both())

        assert first.status == "completed"
        assert isinstance(second, CycleInProgressError)
        assert channel.send.await_count == 1
        winner.add_roles.assert_awaited_once()


class TestMalformedTally:
    def test_non_numeric_winner_still_resets(self, tmp_path):
        bot, _, channel, _ = _setup(tmp_path)
        bot.store.record_activity("abc")

        result = run_async(bot.leaderboard.run(bot))

        assert result.status == "completed"
        assert result.winner_rewarded is False
        channel.send.assert_awaited_once()
        assert len(bot.store) == 0
