"""Roster checks run before a race starts or a paste is parsed."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from racetally.models import Participant
from racetally.parsers.base import split_lines


def validate_roster(roster: Sequence[Participant]) -> list[str]:
    """Return a message for every duplicate name, entry index or gate."""
    errors: list[str] = []

    names = Counter(p.name for p in roster)
    for name, count in names.items():
        if count > 1:
            errors.append(f"Name {name!r} is registered {count} times")

    indexes = Counter(p.entry_index for p in roster)
    for index, count in indexes.items():
        if count > 1:
            errors.append(f"Entry index {index} is used {count} times")

    gates = Counter(p.gate for p in roster if p.gate is not None)
    for gate, count in gates.items():
        if count > 1:
            errors.append(f"Gate {gate} is assigned {count} times")

    return errors


def count_entry_lines(text: str) -> int:
    """Count the non-blank lines of a paste, for a quick "everyone posted" check."""
    return sum(1 for _ in split_lines(text))
