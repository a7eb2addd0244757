"""
tallybot.services.platform — Bounded Discord calls
===================================================

Every outbound Discord call made by the services goes through
:func:`call_platform`, which puts a local deadline on it and folds the
failure modes (timeout, HTTP error, missing permissions) into one
exception type.  A stalled request can't wedge the event loop that also
serves chat events and the dashboard.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

import discord

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 15.0


class PlatformCallError(RuntimeError):
    """A Discord call timed out or was rejected."""

    def __init__(self, what: str, cause: BaseException | None = None) -> None:
        self.what = what
        self.cause = cause
        detail = f": {cause}" if cause is not None and str(cause) else ""
        super().__init__(f"{what} failed{detail}")


async def call_platform(
    awaitable: Awaitable[T],
    *,
    what: str,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> T:
    """Await *awaitable* with a *timeout*; raise :class:`PlatformCallError` on failure."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        logger.warning("Discord call timed out after %.0fs: %s", timeout, what)
        raise PlatformCallError(what, exc) from exc
    except discord.HTTPException as exc:
        logger.warning("Discord call failed: %s (%s %s)", what, exc.status, exc.text)
        raise PlatformCallError(what, exc) from exc
