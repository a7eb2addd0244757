"""
tallybot.services.log_buffer — In-Memory Ring Buffer for Recent Logs
=====================================================================

Plugs into Python's ``logging`` framework and keeps the last few
thousand records in memory.  ``GET /api/logs`` reads from it.

No persistence: the buffer is a view of what the process has been doing
recently, not an audit store (moderation audits go to the logs channel).
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import UTC, datetime

DEFAULT_CAPACITY = 2000
VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Module-level singleton — one per process
_buffer: LogBuffer | None = None
_lock = threading.Lock()


class LogEntry:
    """One captured log record."""
    __slots__ = ("timestamp", "level", "logger", "message")

    def __init__(self, timestamp: str, level: str, logger: str, message: str):
        self.timestamp = timestamp
        self.level = level
        self.logger = logger
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {
            "timestamp": self.timestamp,
            "level": self.level,
            "logger": self.logger,
            "message": self.message,
        }


class LogBuffer:
    """Thread-safe ring buffer backed by :class:`collections.deque`.

    uvicorn may log from its own threads, hence the lock.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def append(self, entry: LogEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def get_entries(self, tail: int = 50, level: str | None = None) -> list[dict[str, str]]:
        """Return the most recent *tail* entries at or above *level*."""
        min_level = getattr(logging, level.upper(), 0) if level else 0

        with self._lock:
            snapshot = list(self._entries)

        results = [
            entry.to_dict()
            for entry in snapshot
            if not min_level or getattr(logging, entry.level, 0) >= min_level
        ]
        if tail and len(results) > tail:
            results = results[-tail:]
        return results

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._entries)


class RingBufferHandler(logging.Handler):
    """Logging handler that appends records to a :class:`LogBuffer`."""

    def __init__(self, buffer: LogBuffer, level: int = logging.INFO) -> None:
        super().__init__(level)
        self._buffer = buffer

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = LogEntry(
                timestamp=datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                level=record.levelname,
                logger=record.name,
                message=self.format(record) if self.formatter else record.getMessage(),
            )
            self._buffer.append(entry)
        except Exception:
            self.handleError(record)


# ---------------------------------------------------------------------------
# Singleton access
# ---------------------------------------------------------------------------
def get_buffer() -> LogBuffer:
    """Return (or create) the process-global log buffer."""
    global _buffer
    if _buffer is None:
        with _lock:
            if _buffer is None:
                _buffer = LogBuffer()
    return _buffer


def install_handler(level: int = logging.INFO) -> RingBufferHandler:
    """Attach the ring-buffer handler to the root logger (idempotent).

    uvicorn's own loggers are forced to propagate so dashboard requests
    show up in the buffer too.
    """
    root = logging.getLogger()
    for h in root.handlers:
        if isinstance(h, RingBufferHandler):
            return h

    handler = RingBufferHandler(get_buffer(), level=level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)

    for logger_name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        logging.getLogger(logger_name).propagate = True

    return handler


def get_logs(tail: int = 50, level: str | None = None) -> list[dict[str, str]]:
    """Convenience wrapper — fetch entries from the global buffer."""
    if level and level.upper() not in VALID_LEVELS:
        raise ValueError(f"Invalid level: {level}. Must be one of {VALID_LEVELS}")
    return get_buffer().get_entries(tail=tail, level=level)
