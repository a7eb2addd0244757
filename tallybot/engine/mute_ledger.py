"""
tallybot.engine.mute_ledger — Pre-mute role snapshots
======================================================

Muting replaces a member's roles with the restricted role, so the roles
they held beforehand are parked here until the unmute puts them back.
An entry exists exactly while the member is muted.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable


class MuteStateError(ValueError):
    """A mute/unmute request doesn't match the ledger state."""


class AlreadyMutedError(MuteStateError):
    pass


class NotMutedError(MuteStateError):
    pass


class MuteLedger:
    """Maps user ID → ordered tuple of role IDs held before the mute."""

    def __init__(self) -> None:
        self._records: dict[int, tuple[int, ...]] = {}

    def record(self, user_id: int, role_ids: Iterable[int]) -> tuple[int, ...]:
        """Park *role_ids* for *user_id*.  Raises if the user is already muted."""
        if user_id in self._records:
            raise AlreadyMutedError("This user is already muted!")
        roles = tuple(dict.fromkeys(role_ids))
        self._records[user_id] = roles
        return roles

    def discard(self, user_id: int) -> None:
        """Forget *user_id* without restoring anything (mute rollback)."""
        self._records.pop(user_id, None)

    def get(self, user_id: int) -> tuple[int, ...]:
        try:
            return self._records[user_id]
        except KeyError:
            raise NotMutedError(
                "This user wasn't muted with the role storage system, "
                "or their role data was lost."
            ) from None

    def restorable_roles(
        self,
        user_id: int,
        restricted_role_id: int,
        existing_role_ids: Collection[int] | None = None,
    ) -> list[int]:
        """Stored roles for *user_id*, minus the restricted role and deleted roles."""
        return [
            role_id
            for role_id in self.get(user_id)
            if role_id != restricted_role_id
            and (existing_role_ids is None or role_id in existing_role_ids)
        ]

    def release(self, user_id: int) -> tuple[int, ...]:
        """Remove and return the entry for *user_id*."""
        roles = self.get(user_id)
        del self._records[user_id]
        return roles

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._records

    def __len__(self) -> int:
        return len(self._records)
