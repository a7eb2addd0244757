"""
tallybot.services.leaderboard_service — The Weekly Leaderboard Cycle
=====================================================================

One call to :meth:`LeaderboardCycle.run` does the whole weekly sequence:

1. Resolve the leaderboard channel (abort if it can't be found).
2. Strip the reward role from everyone who holds it (best-effort).
3. Rank the tally; an empty tally gets a "no activity" notice and is
   *not* reset.
4. Post the mention line + results embed, pinging the winners.
5. Give the reward role to the #1 member (best-effort).
6. Reset the tally.

The cycle can be fired by the weekly task loop, ``!testlb``, or
``POST /api/test-leaderboard``.  All three share one
:class:`LeaderboardCycle`, and a second call while one is in flight is
rejected with :class:`CycleInProgressError` instead of interleaving
(double-stripping roles, resetting mid-announcement).

Messages counted while the announcement is being posted are cleared by
the final reset along with everything else; that window is a few network
round trips wide and accepted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import discord

from tallybot.constants import LEADERBOARD_SIZE
from tallybot.engine.counter_store import CounterStore
from tallybot.engine.ranking import (
    RankedEntry,
    format_detail_block,
    format_mention_line,
    rank_tally,
)
from tallybot.services.embeds import build_leaderboard_embed
from tallybot.services.platform import PlatformCallError, call_platform

if TYPE_CHECKING:
    from tallybot.bot.core import TallyBot

logger = logging.getLogger(__name__)

NO_ACTIVITY_MESSAGE = "\U0001f4ca No messages recorded this week!"


class CycleInProgressError(RuntimeError):
    """Raised when a cycle is triggered while another one is running."""

    def __init__(self) -> None:
        super().__init__("A leaderboard cycle is already running")


@dataclass(slots=True)
class CycleResult:
    """Outcome of one cycle.

    ``status`` is one of ``completed``, ``empty``, ``no_destination`` or
    ``delivery_failed``.
    """

    status: str
    ranking: list[RankedEntry] = field(default_factory=list)
    total: int = 0
    roles_removed: int = 0
    role_failures: list[str] = field(default_factory=list)
    winner_id: str | None = None
    winner_rewarded: bool = False

    @property
    def ok(self) -> bool:
        return self.status in ("completed", "empty")

    def summary(self) -> str:
        if self.status == "completed":
            return f"Leaderboard sent successfully ({len(self.ranking)} ranked, {self.total} messages)"
        if self.status == "empty":
            return "No messages recorded this week; leaderboard not reset"
        if self.status == "no_destination":
            return "Leaderboard channel not found"
        return "Failed to post the leaderboard; tally kept"


class LeaderboardCycle:
    """Runs the compute → announce → reward → reset sequence, one at a time."""

    def __init__(self, store: CounterStore, *, size: int = LEADERBOARD_SIZE) -> None:
        self.store = store
        self.size = size
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def run(self, bot: TallyBot) -> CycleResult:
        """Run one cycle.  Raises :class:`CycleInProgressError` if one is active."""
        if self._running:
            raise CycleInProgressError()
        self._running = True
        try:
            return await self._run(bot)
        finally:
            self._running = False

    # -------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------
    async def _run(self, bot: TallyBot) -> CycleResult:
        cfg = bot.cfg
        timeout = cfg.platform_timeout_seconds

        channel = await bot.resolve_channel(cfg.leaderboard_channel_id)
        if channel is None:
            logger.error("Leaderboard channel %s not found", cfg.leaderboard_channel_id)
            return CycleResult(status="no_destination")

        guild: discord.Guild | None = getattr(channel, "guild", None)
        result = CycleResult(status="completed")

        if guild is not None:
            result.roles_removed, result.role_failures = await self._strip_reward_role(
                guild, cfg.reward_role_id, timeout,
            )

        snapshot = self.store.snapshot()
        ranking = rank_tally(snapshot.counts, self.size)
        if not ranking:
            try:
                await call_platform(
                    channel.send(NO_ACTIVITY_MESSAGE), what="send empty leaderboard", timeout=timeout,
                )
            except PlatformCallError:
                logger.error("Failed to post the no-activity notice")
            result.status = "empty"
            return result

        result.ranking = ranking
        result.total = snapshot.total

        embed = build_leaderboard_embed(
            format_detail_block(ranking, snapshot.total),
            image_url=cfg.leaderboard_image_url,
        )
        try:
            await call_platform(
                channel.send(
                    content=format_mention_line(ranking),
                    embed=embed,
                    allowed_mentions=discord.AllowedMentions(
                        everyone=False, users=True, roles=False,
                    ),
                ),
                what="send leaderboard",
                timeout=timeout,
            )
        except PlatformCallError:
            logger.error("Failed to post the leaderboard; keeping the tally for the next run")
            result.status = "delivery_failed"
            return result

        winner = ranking[0]
        result.winner_id = winner.user_id
        if guild is not None:
            result.winner_rewarded = await self._grant_reward_role(
                guild, cfg.reward_role_id, winner.user_id, timeout,
            )

        self.store.reset()
        logger.info(
            "Weekly leaderboard sent and reset (%d ranked, %d messages, winner %s)",
            len(ranking), snapshot.total, winner.user_id,
        )
        return result

    async def _strip_reward_role(
        self, guild: discord.Guild, role_id: int | None, timeout: float,
    ) -> tuple[int, list[str]]:
        """Remove the reward role from every holder.  Returns (removed, failures)."""
        if role_id is None:
            logger.warning("No reward role configured — skipping role strip")
            return 0, []
        role = guild.get_role(role_id)
        if role is None:
            logger.error("Winner role %s not found!", role_id)
            return 0, []

        removed = 0
        failures: list[str] = []
        for member in list(role.members):
            try:
                await call_platform(
                    member.remove_roles(role, reason="Weekly leaderboard reset"),
                    what=f"remove winner role from {member}",
                    timeout=timeout,
                )
            except PlatformCallError:
                failures.append(str(member.id))
                continue
            removed += 1
            logger.info("Removed winner role from %s", member)

        if failures:
            logger.warning(
                "Winner role strip: %d removed, %d failed (%s)",
                removed, len(failures), ", ".join(failures),
            )
        return removed, failures

    async def _grant_reward_role(
        self, guild: discord.Guild, role_id: int | None, user_id: str, timeout: float,
    ) -> bool:
        if role_id is None:
            return False
        role = guild.get_role(role_id)
        if role is None:
            logger.error("Winner role %s not found!", role_id)
            return False
        try:
            uid = int(user_id)
        except ValueError:
            logger.error("Winner %r is not a user ID; no role granted", user_id)
            return False

        try:
            member = guild.get_member(uid) or await call_platform(
                guild.fetch_member(uid),
                what=f"fetch winner {user_id}",
                timeout=timeout,
            )
            await call_platform(
                member.add_roles(role, reason="Weekly leaderboard winner"),
                what=f"give winner role to {user_id}",
                timeout=timeout,
            )
        except PlatformCallError:
            logger.error("Failed to give winner role to %s", user_id)
            return False

        logger.info("Gave winner role to %s", member)
        return True
