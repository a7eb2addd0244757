"""
tallybot.constants — Shared Constants
======================================

Single source of truth for fixed limits and presentation constants.
Import from here instead of duplicating in cogs, services, and routes.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Counter store
# ---------------------------------------------------------------------------
SAVE_INTERVAL_SECONDS = 30.0      # Coalesced snapshot writes
PERSIST_INTERVAL_MINUTES = 5      # Forced snapshot writes from the task loop

# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------
LEADERBOARD_SIZE = 10
RANK_BADGES: list[str] = ["\U0001f947", "\U0001f948", "\U0001f949"]  # 🥇🥈🥉

# ---------------------------------------------------------------------------
# Command handling
# ---------------------------------------------------------------------------
COMMAND_COOLDOWN_SECONDS = 3.0
EPHEMERAL_REPLY_SECONDS = 5.0     # Auto-delete for error / cooldown replies
CLEAR_CONFIRM_SECONDS = 3.0
SUGGESTION_MAX_LENGTH = 1000

# ---------------------------------------------------------------------------
# Moderation limits
# ---------------------------------------------------------------------------
TIMEOUT_MIN_MINUTES = 1
TIMEOUT_MAX_MINUTES = 1440
TIMEOUT_DEFAULT_MINUTES = 10
CLEAR_MIN = 1
CLEAR_MAX = 100
MUTED_ROLE_NAME = "Muted"
DEFAULT_REASON = "No reason provided"
