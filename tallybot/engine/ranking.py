"""
tallybot.engine.ranking — Leaderboard ranking & announcement text
==================================================================

Pure functions: no Discord objects, no I/O.  The leaderboard service
feeds these a :class:`~tallybot.engine.counter_store.TallySnapshot` and
wraps the resulting text in an embed.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from tallybot.constants import LEADERBOARD_SIZE, RANK_BADGES


@dataclass(frozen=True, slots=True)
class RankedEntry:
    rank: int
    user_id: str
    count: int

    @property
    def mention(self) -> str:
        return f"<@{self.user_id}>"


def rank_tally(counts: Mapping[str, int], limit: int = LEADERBOARD_SIZE) -> list[RankedEntry]:
    """Sort *counts* by count descending and keep the top *limit*.

    ``sorted`` is stable, so ties keep the mapping's insertion order.
    """
    ordered = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [
        RankedEntry(rank=i, user_id=user_id, count=count)
        for i, (user_id, count) in enumerate(ordered[:limit], start=1)
    ]


def format_mention_line(entries: list[RankedEntry]) -> str:
    """``🎉 **This week's top winners:** 🥇 <@a> 🥈 <@b> 🥉 <@c> 🎉``"""
    podium = " ".join(
        f"{badge} {entry.mention}" for badge, entry in zip(RANK_BADGES, entries)
    )
    return f"\U0001f389 **This week's top winners:** {podium} \U0001f389"


def format_entry(entry: RankedEntry) -> str:
    line = f"#{entry.rank} {entry.mention} with **{entry.count}** messages"
    if entry.rank <= len(RANK_BADGES):
        line += f" {RANK_BADGES[entry.rank - 1]}"
    return line


def format_detail_block(entries: list[RankedEntry], total: int) -> str:
    """Podium lines, the rest of the top ten, and the weekly total."""
    podium = "\n".join(format_entry(e) for e in entries[: len(RANK_BADGES)])
    rest = "\n".join(format_entry(e) for e in entries[len(RANK_BADGES):])
    return (
        f"{podium}\n\n{rest}\n\n"
        f"\U0001f4ca **Total Messages This Week:** {total}\n"
        "\U0001f504 The leaderboard will now reset!"
    )
