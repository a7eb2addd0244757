"""
tallybot.services.moderation_service — Moderation Actions
==========================================================

kick / ban / unban / timeout / untimeout / mute / unmute / clear, shared
by the chat commands and the dashboard API.

Every action follows the same shape:

1. Validate arguments and role hierarchy (raise before touching Discord).
2. Perform one Discord mutation through :func:`call_platform`.
3. Emit an :class:`~tallybot.services.audit.AuditRecord`.

Failures reach the caller as :class:`ModerationError`, carrying a
user-facing message and an HTTP-style status code.  Permission checks
belong to the caller: the command router gates chat commands on Discord
permissions, the API gates on the dashboard bearer secret.

Mute is the one stateful action.  The member's roles are parked in the
:class:`~tallybot.engine.mute_ledger.MuteLedger` and replaced by the
``Muted`` role; if the replacement fails the ledger entry is rolled back
so nobody is left "recorded but not muted".
"""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, TypeVar

import discord

from tallybot.constants import (
    CLEAR_MAX,
    CLEAR_MIN,
    DEFAULT_REASON,
    MUTED_ROLE_NAME,
    TIMEOUT_DEFAULT_MINUTES,
    TIMEOUT_MAX_MINUTES,
    TIMEOUT_MIN_MINUTES,
)
from tallybot.engine.mute_ledger import MuteLedger
from tallybot.services.audit import AuditRecord, send_audit
from tallybot.services.platform import PlatformCallError, call_platform

if TYPE_CHECKING:
    from tallybot.bot.core import TallyBot

logger = logging.getLogger(__name__)

T = TypeVar("T")

_USER_ID_RE = re.compile(r"^(?:<@!?)?(\d{15,20})>?$")
BULK_DELETE_MAX_AGE = timedelta(days=14)


class ModerationError(Exception):
    """A moderation request was rejected or failed."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass(frozen=True, slots=True)
class Actor:
    """Who is performing an action.

    ``member`` is set for chat commands and drives the role-hierarchy
    check; dashboard actions have no member.
    """

    name: str
    id: int | None = None
    member: discord.Member | None = None

    @classmethod
    def from_member(cls, member: discord.Member) -> Actor:
        return cls(name=str(member), id=member.id, member=member)


DASHBOARD_ACTOR = Actor(name="Web Dashboard")


@dataclass(slots=True)
class ModerationResult:
    action: str
    message: str
    audit: AuditRecord
    data: dict = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Argument validation
# ---------------------------------------------------------------------------
def parse_timeout_minutes(raw: str | int | None) -> int:
    """Timeout length in minutes: default when absent, else within [1, 1440]."""
    if raw is None or raw == "":
        return TIMEOUT_DEFAULT_MINUTES
    try:
        if isinstance(raw, bool):
            raise TypeError
        minutes = int(raw)
    except (TypeError, ValueError):
        raise ModerationError(
            f"Duration must be a whole number of minutes between "
            f"{TIMEOUT_MIN_MINUTES} and {TIMEOUT_MAX_MINUTES}."
        ) from None
    if not TIMEOUT_MIN_MINUTES <= minutes <= TIMEOUT_MAX_MINUTES:
        raise ModerationError(
            f"Duration must be between {TIMEOUT_MIN_MINUTES} and "
            f"{TIMEOUT_MAX_MINUTES} minutes (24 hours)."
        )
    return minutes


def parse_clear_amount(raw: str | int | None) -> int:
    """Message count for ``clear``: an integer within [1, 100]."""
    try:
        if isinstance(raw, bool):
            raise TypeError
        amount = int(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        amount = None
    if amount is None or not CLEAR_MIN <= amount <= CLEAR_MAX:
        raise ModerationError(f"Please provide a number between {CLEAR_MIN} and {CLEAR_MAX}.")
    return amount


def parse_user_id(raw: str | int | None) -> int:
    """Accept a raw snowflake or a ``<@id>`` mention."""
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    match = _USER_ID_RE.match(str(raw or "").strip())
    if match is None:
        raise ModerationError("Please provide a valid user ID.")
    return int(match.group(1))


def check_hierarchy(guild: discord.Guild, actor: Actor, target: discord.Member, verb: str) -> None:
    """Reject unless *actor* owns the guild or outranks *target*."""
    if actor.member is None or actor.id == guild.owner_id:
        return
    if target.top_role.position >= actor.member.top_role.position:
        raise ModerationError(f"You cannot {verb} this user (role hierarchy).", 403)


def find_muted_role(guild: discord.Guild) -> discord.Role | None:
    return discord.utils.get(guild.roles, name=MUTED_ROLE_NAME)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------
class ModerationService:
    """Moderation actions bound to one bot instance."""

    def __init__(self, bot: TallyBot, ledger: MuteLedger) -> None:
        self.bot = bot
        self.ledger = ledger

    @property
    def timeout(self) -> float:
        return self.bot.cfg.platform_timeout_seconds

    async def _call(self, awaitable: Awaitable[T], *, what: str, failure: str) -> T:
        try:
            return await call_platform(awaitable, what=what, timeout=self.timeout)
        except PlatformCallError as exc:
            raise ModerationError(failure, 502) from exc

    async def _finish(
        self, action: str, message: str, record: AuditRecord, **data,
    ) -> ModerationResult:
        await send_audit(self.bot, record)
        return ModerationResult(action=action, message=message, audit=record, data=data)

    # -------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------
    async def resolve_member(self, guild: discord.Guild, user_id: str | int) -> discord.Member:
        """Find a guild member by ID, hitting the API if the cache misses."""
        uid = parse_user_id(user_id)
        member = guild.get_member(uid)
        if member is not None:
            return member
        try:
            return await call_platform(
                guild.fetch_member(uid), what=f"fetch member {uid}", timeout=self.timeout,
            )
        except PlatformCallError as exc:
            raise ModerationError("Member not found", 404) from exc

    # -------------------------------------------------------------------
    # kick / ban / unban
    # -------------------------------------------------------------------
    async def kick(
        self, guild: discord.Guild, actor: Actor, target: discord.Member, reason: str | None = None,
    ) -> ModerationResult:
        check_hierarchy(guild, actor, target, "kick")
        reason = reason or DEFAULT_REASON
        await self._call(
            target.kick(reason=reason),
            what=f"kick {target.id}",
            failure="Failed to kick user. Check my permissions and role hierarchy.",
        )
        record = AuditRecord("kick", actor.name, str(target), str(target.id), reason)
        return await self._finish("kick", f"Kicked {target} | Reason: {reason}", record)

    async def ban(
        self, guild: discord.Guild, actor: Actor, target: discord.Member, reason: str | None = None,
    ) -> ModerationResult:
        check_hierarchy(guild, actor, target, "ban")
        reason = reason or DEFAULT_REASON
        await self._call(
            target.ban(reason=reason),
            what=f"ban {target.id}",
            failure="Failed to ban user. Check my permissions and role hierarchy.",
        )
        record = AuditRecord("ban", actor.name, str(target), str(target.id), reason)
        return await self._finish("ban", f"Banned {target} | Reason: {reason}", record)

    async def unban(
        self, guild: discord.Guild, actor: Actor, user_id: str | int, reason: str | None = None,
    ) -> ModerationResult:
        uid = parse_user_id(user_id)
        await self._call(
            guild.unban(discord.Object(id=uid), reason=reason),
            what=f"unban {uid}",
            failure="Failed to unban user. Check the user ID and my permissions.",
        )
        record = AuditRecord("unban", actor.name, f"<@{uid}>", str(uid), reason)
        return await self._finish("unban", f"User <@{uid}> has been unbanned.", record)

    # -------------------------------------------------------------------
    # timeout / untimeout
    # -------------------------------------------------------------------
    async def timeout_member(
        self,
        guild: discord.Guild,
        actor: Actor,
        target: discord.Member,
        minutes: str | int | None = None,
        reason: str | None = None,
    ) -> ModerationResult:
        duration = parse_timeout_minutes(minutes)
        reason = reason or DEFAULT_REASON
        await self._call(
            target.timeout(timedelta(minutes=duration), reason=reason),
            what=f"timeout {target.id}",
            failure="Failed to timeout user. Check my permissions.",
        )
        record = AuditRecord(
            "timeout", actor.name, str(target), str(target.id), reason,
            details={"Duration": f"{duration} minutes"},
        )
        return await self._finish(
            "timeout",
            f"Timed out {target} for {duration} minutes | Reason: {reason}",
            record,
            duration=duration,
        )

    async def untimeout_member(
        self, guild: discord.Guild, actor: Actor, target: discord.Member,
    ) -> ModerationResult:
        await self._call(
            target.timeout(None),
            what=f"remove timeout {target.id}",
            failure="Failed to remove timeout. Check my permissions.",
        )
        record = AuditRecord("untimeout", actor.name, str(target), str(target.id))
        return await self._finish("untimeout", f"Removed timeout from {target}", record)

    # -------------------------------------------------------------------
    # mute / unmute
    # -------------------------------------------------------------------
    async def ensure_muted_role(self, guild: discord.Guild) -> tuple[discord.Role, bool]:
        """Return the ``Muted`` role, creating it (with channel overwrites) if needed."""
        role = find_muted_role(guild)
        if role is not None:
            return role, False

        role = await self._call(
            guild.create_role(
                name=MUTED_ROLE_NAME,
                colour=discord.Colour.light_grey(),
                permissions=discord.Permissions.none(),
                reason="Restricted role for muted members",
            ),
            what="create Muted role",
            failure="Couldn't create Muted role. Check my permissions.",
        )

        for channel in list(guild.channels):
            try:
                await call_platform(
                    channel.set_permissions(
                        role, send_messages=False, speak=False, add_reactions=False,
                    ),
                    what=f"set Muted overwrites on #{channel.name}",
                    timeout=self.timeout,
                )
            except PlatformCallError:
                logger.error("Failed to set permissions for channel %s", channel.name)
        logger.info("Created %s role in guild %s", MUTED_ROLE_NAME, guild.id)
        return role, True

    async def mute(
        self, guild: discord.Guild, actor: Actor, target: discord.Member, reason: str | None = None,
    ) -> ModerationResult:
        if target.id in self.ledger:
            raise ModerationError("This user is already muted!", 409)

        role, created = await self.ensure_muted_role(guild)

        # Capture and record with no await in between.  The membership check
        # is repeated because role creation yields to the event loop.
        if target.id in self.ledger:
            raise ModerationError("This user is already muted!", 409)
        previous = self.ledger.record(
            target.id, [r.id for r in target.roles if r.id != guild.default_role.id],
        )

        reason = reason or DEFAULT_REASON
        try:
            await call_platform(
                target.edit(roles=[role], reason=f"Muted: {reason}"),
                what=f"mute {target.id}",
                timeout=self.timeout,
            )
        except PlatformCallError as exc:
            self.ledger.discard(target.id)
            raise ModerationError(
                "Failed to mute user. Check my permissions and role hierarchy.", 502,
            ) from exc
        except BaseException:
            self.ledger.discard(target.id)
            raise

        record = AuditRecord(
            "mute", actor.name, str(target), str(target.id), reason,
            details={"Roles Removed": f"{len(previous)} role(s)"},
        )
        return await self._finish(
            "mute",
            f"Muted {target} | Removed {len(previous)} role(s) | Reason: {reason}",
            record,
            rolesRemoved=len(previous),
            roleCreated=created,
        )

    async def unmute(
        self, guild: discord.Guild, actor: Actor, target: discord.Member,
    ) -> ModerationResult:
        role = find_muted_role(guild)
        if role is None:
            raise ModerationError("No 'Muted' role found.", 409)
        if target.id not in self.ledger:
            raise ModerationError(
                "This user wasn't muted with the role storage system, "
                "or their role data was lost.",
                409,
            )

        existing = {r.id for r in guild.roles}
        restore_ids = self.ledger.restorable_roles(target.id, role.id, existing)
        roles = [r for r in (guild.get_role(rid) for rid in restore_ids) if r is not None]

        await self._call(
            target.edit(roles=roles, reason="Unmuted"),
            what=f"unmute {target.id}",
            failure="Failed to unmute user. Check my permissions.",
        )
        self.ledger.release(target.id)

        record = AuditRecord(
            "unmute", actor.name, str(target), str(target.id),
            details={"Roles Restored": f"{len(roles)} role(s)"},
        )
        return await self._finish(
            "unmute",
            f"Unmuted {target} | Restored {len(roles)} role(s)",
            record,
            rolesRestored=len(roles),
        )

    # -------------------------------------------------------------------
    # clear
    # -------------------------------------------------------------------
    async def clear(
        self, channel: discord.TextChannel, actor: Actor, amount: str | int | None,
    ) -> ModerationResult:
        """Bulk-delete up to *amount* recent messages (older than 14 days are skipped)."""
        count = parse_clear_amount(amount)
        cutoff = discord.utils.utcnow() - BULK_DELETE_MAX_AGE
        deleted = await self._call(
            channel.purge(limit=count, check=lambda m: m.created_at > cutoff),
            what=f"purge {count} messages in #{channel.name}",
            failure="Failed to delete messages. They might be too old or I lack permissions.",
        )
        record = AuditRecord(
            "clear", actor.name, f"#{channel.name}", str(channel.id),
            details={"Amount": str(len(deleted))},
        )
        return await self._finish(
            "clear", f"Deleted {len(deleted)} messages.", record, deleted=len(deleted),
        )
