"""
tallybot.engine.commands — Prefixed command parsing
====================================================
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ParsedCommand:
    name: str
    args: tuple[str, ...]

    @property
    def text(self) -> str:
        """All arguments joined back into one string."""
        return " ".join(self.args)


def parse_command(content: str, prefix: str = "!") -> ParsedCommand | None:
    """Split ``"!kick @bob spamming"`` into ``("kick", ("@bob", "spamming"))``.

    Returns ``None`` when *content* doesn't start with *prefix* or has no
    command name after it.  Command names are case-insensitive.
    """
    if not prefix or not content.startswith(prefix):
        return None
    parts = content[len(prefix):].split()
    if not parts:
        return None
    return ParsedCommand(name=parts[0].lower(), args=tuple(parts[1:]))
