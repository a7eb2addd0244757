"""
tallybot.services.audit — Moderation audit trail
=================================================

Each moderation action produces one :class:`AuditRecord`.  The record is
always written to the log; delivery to the logs channel is best-effort
and never fails the action that produced it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from tallybot.services.embeds import build_audit_embed
from tallybot.services.platform import PlatformCallError, call_platform

if TYPE_CHECKING:
    from tallybot.bot.core import TallyBot

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AuditRecord:
    action: str
    actor: str
    target: str
    target_id: str
    reason: str | None = None
    details: dict[str, str] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "actor": self.actor,
            "target": self.target,
            "target_id": self.target_id,
            "reason": self.reason,
            "details": dict(self.details),
            "timestamp": self.timestamp.isoformat(),
        }


async def send_audit(bot: TallyBot, record: AuditRecord) -> bool:
    """Log *record* and post it to the logs channel.  Returns ``True`` if posted."""
    logger.info(
        "Moderation: %s by %s on %s (%s) — %s",
        record.action, record.actor, record.target, record.target_id,
        record.reason or "-",
        extra={"audit": record.to_dict()},
    )

    channel = await bot.resolve_channel(bot.cfg.logs_channel_id)
    if channel is None:
        return False

    try:
        await call_platform(
            channel.send(embed=build_audit_embed(record)),
            what="send audit log",
            timeout=bot.cfg.platform_timeout_seconds,
        )
    except PlatformCallError:
        logger.error("Failed to send audit log for %s", record.action)
        return False
    return True
