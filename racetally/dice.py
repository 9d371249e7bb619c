"""Dice notation engine.

Supports the notation used by the race dice bot: XdY and -XdY.
Examples: 3d8, 1d100, -1d27.

A leading minus marks the whole roll as subtracted: "-1d27" rolls one
twenty-seven sided die and contributes the negated result.
"""

from __future__ import annotations

import random
from typing import Protocol

from racetally.models import DiceOutcome, DiceSpec


class RandomSource(Protocol):
    def randint(self, a: int, b: int) -> int: ...


class MalformedNotation(ValueError):
    """Raised when a dice notation is invalid."""


def parse(notation: str) -> DiceSpec:
    """Parse dice notation into a DiceSpec.

    Args:
        notation: Dice notation string, e.g. "3d8" or "-1d27".

    Returns:
        DiceSpec with count, face and sign.

    Raises:
        MalformedNotation: If the notation does not split into two positive
            integers around a single "d".
    """
    text = notation.strip()
    negative = text.startswith("-")
    body = text[1:] if negative else text

    parts = body.lower().split("d")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise MalformedNotation(f"Invalid dice notation: {notation!r}")
    if not (parts[0].isascii() and parts[0].isdigit() and parts[1].isascii() and parts[1].isdigit()):
        raise MalformedNotation(f"Invalid dice values: {notation!r}")

    count = int(parts[0])
    face = int(parts[1])
    if count <= 0:
        raise MalformedNotation(f"Dice count must be positive: {notation!r}")
    if face <= 0:
        raise MalformedNotation(f"Dice face must be positive: {notation!r}")

    return DiceSpec(count=count, face=face, negative=negative)


def roll(notation: str, rng: RandomSource | None = None) -> DiceOutcome:
    """Roll dice described by notation.

    Args:
        notation: Dice notation string, e.g. "3d8" or "-1d27".
        rng: Random source with a ``randint`` method. Defaults to the
            ``random`` module.

    Returns:
        DiceOutcome with every die value and the signed sum.

    Raises:
        MalformedNotation: If the notation is invalid.
    """
    spec = parse(notation)
    source = rng if rng is not None else random
    values = tuple(source.randint(1, spec.face) for _ in range(spec.count))
    total = sum(values)
    return DiceOutcome(
        notation=str(spec),
        rolled_values=values,
        signed_sum=-total if spec.negative else total,
    )


def is_valid(notation: str) -> bool:
    """Return True if notation parses as a dice expression."""
    try:
        parse(notation)
    except MalformedNotation:
        return False
    return True
