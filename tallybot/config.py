"""
tallybot.config — YAML + Environment Configuration Loader
==========================================================

Settings come from two places:

* an optional ``config.yaml`` for soft settings that are safe to commit
  (prefix, schedule, file locations), and
* environment variables (usually loaded from ``.env``) for channel IDs,
  role IDs and secrets.  Environment values always win.

The Discord bot token is **not** part of this object; the entry point
reads ``DISCORD_TOKEN`` directly so it never ends up in a repr or log line.

Usage::

    from tallybot.config import load_config

    cfg = load_config()                  # ./config.yaml (optional) + os.environ
    print(cfg.leaderboard_channel_id)    # 1468816181854081229
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class TallyConfig:
    """Immutable configuration for the bot and its dashboard."""

    # Discord
    bot_prefix: str = "!"
    guild_id: int | None = None  # Primary guild; first joined guild when unset

    # Channels & roles
    leaderboard_channel_id: int | None = None
    suggestions_channel_id: int | None = None
    logs_channel_id: int | None = None
    reward_role_id: int | None = None

    # Dashboard
    dashboard_host: str = "0.0.0.0"
    dashboard_port: int = 3000
    dashboard_secret: str | None = field(default=None, repr=False)

    # Persistence
    data_file: str = "leaderboard.json"

    # Weekly cycle (UTC)
    leaderboard_weekday: int = 6  # 0=Monday … 6=Sunday
    leaderboard_hour: int = 0
    leaderboard_image_url: str | None = None

    # Outbound Discord calls
    platform_timeout_seconds: float = 15.0

    log_level: str = "INFO"


# (attribute, env var, converter)
_FIELDS: list[tuple[str, str, type]] = [
    ("bot_prefix", "BOT_PREFIX", str),
    ("guild_id", "GUILD_ID", int),
    ("leaderboard_channel_id", "LEADERBOARD_CHANNEL_ID", int),
    ("suggestions_channel_id", "SUGGESTIONS_CHANNEL_ID", int),
    ("logs_channel_id", "LOGS_CHANNEL_ID", int),
    ("reward_role_id", "WINNER_ROLE_ID", int),
    ("dashboard_host", "DASHBOARD_HOST", str),
    ("dashboard_port", "PORT", int),
    ("dashboard_secret", "DASHBOARD_PASSWORD", str),
    ("data_file", "DATA_FILE", str),
    ("leaderboard_weekday", "LEADERBOARD_WEEKDAY", int),
    ("leaderboard_hour", "LEADERBOARD_HOUR", int),
    ("leaderboard_image_url", "LEADERBOARD_IMAGE_URL", str),
    ("platform_timeout_seconds", "PLATFORM_TIMEOUT_SECONDS", float),
    ("log_level", "LOG_LEVEL", str),
]


def _convert(key: str, value, converter: type):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        return converter(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid value for {key}: {value!r}") from None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(
    path: str | Path = "config.yaml",
    env: Mapping[str, str] | None = None,
) -> TallyConfig:
    """Build a :class:`TallyConfig` from *path* and *env*.

    Parameters
    ----------
    path:
        YAML file with soft settings.  A missing file is fine.
    env:
        Environment mapping; defaults to ``os.environ``.

    Raises
    ------
    ValueError
        If a numeric setting cannot be parsed, or the schedule is out of range.
    """
    env = os.environ if env is None else env

    raw: dict = {}
    config_path = Path(path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}

    values: dict = {}
    for attr, env_key, converter in _FIELDS:
        if env.get(env_key):
            value = _convert(env_key, env[env_key], converter)
        elif raw.get(attr) is not None:
            value = _convert(attr, raw[attr], converter)
        else:
            continue
        if value is not None:
            values[attr] = value

    cfg = TallyConfig(**values)
    if not 0 <= cfg.leaderboard_weekday <= 6:
        raise ValueError("leaderboard_weekday must be between 0 (Monday) and 6 (Sunday)")
    if not 0 <= cfg.leaderboard_hour <= 23:
        raise ValueError("leaderboard_hour must be between 0 and 23")
    return cfg
