"""
tallybot.engine.counter_store — Per-User Message Tally
=======================================================

Owns the weekly message tally (user ID → message count) and its JSON
snapshot on disk.  Nothing else touches the underlying dict; callers go
through :meth:`record_activity`, :meth:`reset` and :meth:`snapshot`.

Writes are coalesced: a non-forced :meth:`flush` is a no-op until
``save_interval`` seconds have passed since the last successful write, so
a busy channel doesn't turn every message into a disk write.  A crash can
lose at most one interval of counts.

Snapshot format (``leaderboard.json``)::

    {
      "123456789012345678": 42,
      "234567890123456789": 7
    }
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from tallybot.constants import SAVE_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TallySnapshot:
    """Read-only copy of the tally at a point in time."""

    counts: Mapping[str, int]
    total: int

    @property
    def users(self) -> int:
        return len(self.counts)


class CounterStore:
    """In-memory tally with a periodically flushed JSON snapshot.

    Parameters
    ----------
    path:
        Snapshot location.
    save_interval:
        Minimum seconds between non-forced writes.
    clock:
        Monotonic time source (injectable for tests).
    """

    def __init__(
        self,
        path: str | Path,
        *,
        save_interval: float = SAVE_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.path = Path(path)
        self.save_interval = save_interval
        self._clock = clock
        self._counts: dict[str, int] = {}
        self._last_save = clock()

    # -------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------
    def load(self) -> int:
        """Initialise the tally from the snapshot file, if it exists and parses.

        Returns the number of users loaded.  An unreadable or malformed
        snapshot is logged and the tally starts empty.
        """
        if not self.path.exists():
            logger.info("No snapshot at %s — starting with an empty tally", self.path)
            return 0

        try:
            raw = self.path.read_text(encoding="utf-8")
            data = json.loads(raw) if raw.strip() else {}
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            counts = {str(k): int(v) for k, v in data.items()}
        except (OSError, ValueError, TypeError):
            logger.exception("Failed to load %s — starting fresh", self.path)
            self._counts = {}
            return 0

        self._counts = {k: v for k, v in counts.items() if k.isdigit() and v >= 0}
        dropped = len(counts) - len(self._counts)
        if dropped:
            logger.warning("Dropped %d malformed entries from %s", dropped, self.path)
        logger.info("Loaded leaderboard data (%d users)", len(self._counts))
        return len(self._counts)

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def record_activity(self, user_id: int | str) -> None:
        """Count one message for *user_id* and schedule a coalesced flush."""
        key = str(user_id)
        self._counts[key] = self._counts.get(key, 0) + 1
        self.flush()

    def reset(self) -> None:
        """Clear every count and write the empty snapshot immediately."""
        self._counts.clear()
        self.flush(force=True)

    # -------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------
    def flush(self, force: bool = False) -> bool:
        """Write the snapshot if the interval elapsed (or *force* is set).

        Returns ``True`` if a write happened.  Write failures are logged and
        swallowed; the in-memory tally stays authoritative until the next
        successful flush.
        """
        now = self._clock()
        if not force and now - self._last_save < self.save_interval:
            return False

        try:
            self._write(dict(self._counts))
        except (OSError, TypeError, ValueError):
            logger.exception("Failed to save leaderboard to %s", self.path)
            return False

        self._last_save = now
        return True

    def _write(self, counts: dict[str, int]) -> None:
        # Write-then-rename so a crash mid-write never truncates the snapshot.
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=directory,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(counts, fh, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def snapshot(self) -> TallySnapshot:
        """Return an immutable copy of the tally plus its total."""
        counts = dict(self._counts)
        return TallySnapshot(counts=MappingProxyType(counts), total=sum(counts.values()))

    def __len__(self) -> int:
        return len(self._counts)
