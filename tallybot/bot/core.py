"""
tallybot.bot.core — Bot Instance & Cog Loader
==============================================

Defines :class:`TallyBot`, a ``commands.Bot`` subclass that owns every
piece of process-wide state:

* ``bot.store``       — the weekly message tally (:class:`CounterStore`)
* ``bot.cooldowns``   — per-(user, command) cooldowns
* ``bot.mute_ledger`` — roles parked while a member is muted
* ``bot.leaderboard`` — the weekly cycle (one at a time)
* ``bot.moderation``  — moderation actions
* ``bot.router``      — the ``!command`` router

Cogs and dashboard routes reach all of it through the bot object, so the
chat commands and the HTTP API act on the same state.

On startup the bot loads its cogs and starts the dashboard's uvicorn
server as a task on the same event loop.  On shutdown it stops the
dashboard and force-flushes the tally.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import time

import discord
from discord.ext import commands

from tallybot.api.server import DashboardServer
from tallybot.bot.router import CommandRouter
from tallybot.config import TallyConfig
from tallybot.constants import LEADERBOARD_SIZE
from tallybot.engine.cooldown import CooldownTracker
from tallybot.engine.counter_store import CounterStore
from tallybot.engine.mute_ledger import MuteLedger
from tallybot.services.leaderboard_service import LeaderboardCycle
from tallybot.services.moderation_service import ModerationService
from tallybot.services.platform import PlatformCallError, call_platform

logger = logging.getLogger(__name__)

# Cog modules to load on startup.
EXTENSIONS: list[str] = [
    "tallybot.bot.cogs.activity",
    "tallybot.bot.cogs.leaderboard",
    "tallybot.bot.cogs.suggestions",
    "tallybot.bot.cogs.moderation",
    "tallybot.bot.cogs.help",
    "tallybot.bot.cogs.tasks",
]


class TallyBot(commands.Bot):
    """Custom Bot subclass that carries project-wide state.

    Parameters
    ----------
    cfg:
        The parsed :class:`TallyConfig`.
    store:
        The tally, already loaded from its snapshot.
    start_dashboard:
        Start the HTTP dashboard in ``setup_hook`` (off in tests).
    """

    def __init__(
        self,
        cfg: TallyConfig,
        store: CounterStore,
        *,
        start_dashboard: bool = True,
    ) -> None:
        # Privileged intents (enable in the Developer Portal):
        #   MESSAGE_CONTENT — command parsing, suggestions
        #   GUILD_MEMBERS   — reward-role holders, /api/members
        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = True
        intents.presences = False

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            help_command=None,
            description="Weekly activity leaderboard & moderation bot",
        )

        self.cfg = cfg
        self.store = store
        self.cooldowns = CooldownTracker()
        self.mute_ledger = MuteLedger()
        self.leaderboard = LeaderboardCycle(store, size=LEADERBOARD_SIZE)
        self.moderation = ModerationService(self, self.mute_ledger)
        self.router = CommandRouter(cfg.bot_prefix, self.cooldowns)

        self.started_at = time.monotonic()
        self._start_dashboard = start_dashboard
        self.dashboard: DashboardServer | None = None
        self._shutdown_task: asyncio.Task | None = None

    @property
    def uptime_seconds(self) -> float:
        return time.monotonic() - self.started_at

    @property
    def primary_guild(self) -> discord.Guild | None:
        """The configured guild, or the first one the bot is in."""
        if self.cfg.guild_id:
            return self.get_guild(self.cfg.guild_id)
        return self.guilds[0] if self.guilds else None

    async def resolve_channel(self, channel_id: int | None):
        """Return a sendable channel by ID from cache or API, or ``None``."""
        if not channel_id:
            return None
        channel = self.get_channel(channel_id)
        if channel is not None:
            return channel
        try:
            return await call_platform(
                self.fetch_channel(channel_id),
                what=f"fetch channel {channel_id}",
                timeout=self.cfg.platform_timeout_seconds,
            )
        except PlatformCallError:
            return None

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Load cogs and start the dashboard before connecting to Discord.

        A cog that fails to load is logged and skipped; one broken cog
        shouldn't take down the whole bot.
        """
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

        self.install_signal_handlers(asyncio.get_running_loop())

        if self._start_dashboard:
            from tallybot.api.main import create_app

            self.dashboard = DashboardServer(
                create_app(self), host=self.cfg.dashboard_host, port=self.cfg.dashboard_port,
            )
            self.dashboard.start()

    def install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        """Close gracefully on SIGTERM; ``Client.run`` only handles Ctrl+C."""
        try:
            loop.add_signal_handler(signal.SIGTERM, self.request_shutdown)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no signal handler support.
            logger.debug("SIGTERM handler not installed on this platform")

    def request_shutdown(self) -> None:
        if self._shutdown_task is not None:
            return
        logger.info("Received SIGTERM, closing")
        self._shutdown_task = asyncio.get_running_loop().create_task(
            self.close(), name="shutdown",
        )

    async def on_ready(self) -> None:
        assert self.user is not None  # guaranteed after on_ready
        logger.info("Logged in as %s (ID: %s)", self.user, self.user.id)
        logger.info("Bot is in %d server(s)", len(self.guilds))
        logger.info("Leaderboard has %d users", len(self.store))

    async def on_message(self, message: discord.Message) -> None:
        """Route ``!commands``.  Counting happens in the activity cog's listener."""
        await self.router.route(message)

    async def on_error(self, event_method: str, /, *args, **kwargs) -> None:
        logger.exception("Unhandled error in %s", event_method)

    async def close(self) -> None:
        """Graceful shutdown — stop the dashboard and persist the tally."""
        logger.info("Bot shutting down…")
        if self.dashboard is not None:
            await self.dashboard.stop()
        self.store.flush(force=True)
        await super().close()
