"""
tallybot.bot.__main__ — Entry point for ``python -m tallybot.bot``
===================================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (optional) + environment.
3. Load the tally snapshot.
4. Create the TallyBot (cogs + dashboard start in ``setup_hook``).
5. Run (blocking).  Ctrl+C / SIGTERM close the bot, which force-flushes
   the tally before exiting.

Run with::

    python -m tallybot.bot
"""

from __future__ import annotations

import logging
import os
import sys

import discord
from dotenv import load_dotenv

from tallybot.bot.core import TallyBot
from tallybot.config import load_config
from tallybot.engine.counter_store import CounterStore
from tallybot.services.log_buffer import install_handler

logger = logging.getLogger("tallybot")


def main() -> None:
    """Bootstrap and run the bot."""

    # 1. Environment variables (secrets).
    load_dotenv()

    # 2. Configuration.
    try:
        cfg = load_config()
    except ValueError as exc:
        logging.basicConfig(level=logging.INFO)
        logger.critical("Invalid configuration: %s", exc)
        sys.exit(1)

    logging.basicConfig(
        level=getattr(logging, cfg.log_level.upper(), logging.INFO),
        format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
        datefmt="%H:%M:%S",
    )
    install_handler()

    token = os.getenv("DISCORD_TOKEN")
    if not token or token == "your-discord-bot-token-here":
        logger.critical(
            "DISCORD_TOKEN is not set.  "
            "Copy .env.example → .env and paste your bot token."
        )
        sys.exit(1)

    if not cfg.dashboard_secret:
        logger.warning(
            "DASHBOARD_PASSWORD is not set — dashboard write endpoints will reject every request."
        )

    # 3. Tally.
    store = CounterStore(cfg.data_file)
    store.load()

    # 4. Bot.
    bot = TallyBot(cfg, store)

    # 5. Run (blocks until Ctrl+C or SIGTERM).
    logger.info("Starting bot…")
    try:
        bot.run(token, log_handler=None)
    except discord.LoginFailure:
        logger.critical("Discord rejected the bot token.  Check DISCORD_TOKEN.")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")
    finally:
        store.flush(force=True)


if __name__ == "__main__":
    main()
