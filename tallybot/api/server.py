"""
tallybot.api.server — uvicorn inside the bot's event loop
==========================================================

The dashboard shares the bot's in-memory state (tally, mute ledger,
cycle guard), so it runs in the same process and on the same asyncio
loop instead of as a separate ``uvicorn`` process.  discord.py owns the
signal handlers; uvicorn's are disabled.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

import uvicorn
from fastapi import FastAPI

logger = logging.getLogger(__name__)


class _EmbeddedServer(uvicorn.Server):
    def install_signal_handlers(self) -> None:  # uvicorn < 0.29
        pass

    @contextlib.contextmanager
    def capture_signals(self):  # uvicorn >= 0.29
        yield


class DashboardServer:
    """Start/stop wrapper around a uvicorn server task."""

    def __init__(self, app: FastAPI, *, host: str, port: int) -> None:
        config = uvicorn.Config(app, host=host, port=port, log_config=None, lifespan="on")
        self._server = _EmbeddedServer(config)
        self._task: asyncio.Task | None = None
        self.host = host
        self.port = port

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._serve(), name="dashboard-server",
        )
        logger.info("Dashboard server running on http://%s:%d", self.host, self.port)

    async def _serve(self) -> None:
        try:
            await self._server.serve()
        except asyncio.CancelledError:
            raise
        except SystemExit:
            # uvicorn exits when it can't bind; keep the bot running.
            logger.error("Dashboard server failed to start on %s:%d", self.host, self.port)
        except Exception:
            logger.exception("Dashboard server crashed")

    async def stop(self, timeout: float = 5.0) -> None:
        if self._task is None:
            return
        self._server.should_exit = True
        try:
            await asyncio.wait_for(self._task, timeout=timeout)
        except asyncio.TimeoutError:
            self._task.cancel()
            logger.warning("Dashboard server did not stop within %.0fs; cancelled", timeout)
        self._task = None
