"""
tests/test_ranking.py — Ranking & Announcement Text
====================================================
"""

from __future__ import annotations

from tallybot.engine.commands import parse_command
from tallybot.engine.ranking import (
    format_detail_block,
    format_mention_line,
    rank_tally,
)


class TestRankTally:
    def test_ties_keep_insertion_order(self):
        counts = {"A": 5, "B": 9, "C": 9, "D": 1}
        assert [e.user_id for e in rank_tally(counts)] == ["B", "C", "A", "D"]

    def test_ranks_are_one_based(self):
        entries = rank_tally({"A": 1, "B": 2})
        assert [(e.rank, e.user_id, e.count) for e in entries] == [(1, "B", 2), (2, "A", 1)]

    def test_truncates_to_limit(self):
        counts = {str(i): i for i in range(25)}
        entries = rank_tally(counts)
        assert len(entries) == 10
        assert entries[0].user_id == "24"
        assert entries[-1].user_id == "15"

    def test_empty(self):
        assert rank_tally({}) == []


class TestFormatting:
    def test_mention_line_names_top_three(self):
        entries = rank_tally({"1": 4, "2": 3, "3": 2, "4": 1})
        line = format_mention_line(entries)
        assert line == (
            "\U0001f389 **This week's top winners:** "
            "\U0001f947 <@1> \U0001f948 <@2> \U0001f949 <@3> \U0001f389"
        )
        assert "<@4>" not in line

    def test_mention_line_with_single_entry(self):
        line = format_mention_line(rank_tally({"1": 4}))
        assert "<@1>" in line
        assert "\U0001f948" not in line

    def test_detail_block(self):
        entries = rank_tally({"1": 4, "2": 3, "3": 2, "4": 1})
        block = format_detail_block(entries, total=10)
        assert "#1 <@1> with **4** messages \U0001f947" in block
        assert "#3 <@3> with **2** messages \U0001f949" in block
        assert "#4 <@4> with **1** messages" in block.splitlines()
        assert "**Total Messages This Week:** 10" in block


class TestParseCommand:
    def test_splits_name_and_args(self):
        parsed = parse_command("!kick <@1> being  rude", "!")
        assert parsed.name == "kick"
        assert parsed.args == ("<@1>", "being", "rude")
        assert parsed.text == "<@1> being rude"

    def test_name_is_lowercased(self):
        assert parse_command("!TestLB", "!").name == "testlb"

    def test_without_prefix(self):
        assert parse_command("hello !kick", "!") is None

    def test_bare_prefix(self):
        assert parse_command("!   ", "!") is None
