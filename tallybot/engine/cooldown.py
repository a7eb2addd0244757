"""
tallybot.engine.cooldown — Per-(user, command) cooldowns
=========================================================
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from tallybot.constants import COMMAND_COOLDOWN_SECONDS

logger = logging.getLogger(__name__)


class CooldownTracker:
    """Fixed-window rate limit keyed by ``(user_id, command)``.

    A rejected call does not move the stamp, so spamming a command during
    the window never extends it.
    """

    def __init__(
        self,
        window: float = COMMAND_COOLDOWN_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window = window
        self._clock = clock
        self._stamps: dict[tuple[int, str], float] = {}

    def check_and_stamp(self, user_id: int, command: str) -> float:
        """Return ``0.0`` and stamp now if allowed, else the seconds left to wait."""
        now = self._clock()
        key = (user_id, command)
        last = self._stamps.get(key)
        if last is not None and now - last < self.window:
            return self.window - (now - last)
        self._stamps[key] = now
        return 0.0

    def prune(self, max_age: float | None = None) -> int:
        """Drop stamps older than *max_age* (default: twice the window)."""
        cutoff = self._clock() - (2 * self.window if max_age is None else max_age)
        before = len(self._stamps)
        self._stamps = {k: v for k, v in self._stamps.items() if v > cutoff}
        pruned = before - len(self._stamps)
        if pruned:
            logger.debug("Pruned %d expired cooldown entries", pruned)
        return pruned

    def __len__(self) -> int:
        return len(self._stamps)
