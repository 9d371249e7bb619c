"""Racing strategy table, pace modifiers and unique-skill dice.

Each strategy adds a fixed value once in the opening phase and rolls its own
dice in the opening, mid and closing phases. After the opening phase the GM
rolls a single pace die (1d9) for the whole field; every strategy reacts to
the pace differently.

Pace table
----------
  roll 1     Very Slow   front runners gain, closers lose
  roll 2-3   Slow        front runners gain a little
  roll 4-6   Middle      no change
  roll 7-8   High        closers gain a little
  roll 9     Very High   front runners lose, closers gain

Callers may register extra strategies with the same shape; lookup is by name
and the first entry with a given name wins.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from racetally.config import settings
from racetally.models import Strategy, StrategyDice, UniqueSkillKind

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

GREAT_ESCAPE = "Great Escape"
FRONT_RUNNER = "Front Runner"
PACE_CHASER = "Pace Chaser"
LATE_SURGER = "Late Surger"
END_CLOSER = "End Closer"

STRATEGY_NAMES: list[str] = [
    GREAT_ESCAPE,
    FRONT_RUNNER,
    PACE_CHASER,
    LATE_SURGER,
    END_CLOSER,
]

# Format: {pace roll: (great escape, front runner, pace chaser, late surger, end closer)}
_PACE_TABLE: dict[int, tuple[int, int, int, int, int]] = {
    1: (12, 10, 5, 0, -5),
    2: (5, 5, 5, 0, 0),
    3: (5, 5, 5, 0, 0),
    4: (0, 0, 0, 0, 0),
    5: (0, 0, 0, 0, 0),
    6: (0, 0, 0, 0, 0),
    7: (0, 0, 0, 5, 5),
    8: (0, 0, 0, 5, 5),
    9: (-7, -5, 0, 5, 10),
}

PACE_LABELS: dict[int, str] = {
    1: "Very Slow",
    2: "Slow",
    3: "Slow",
    4: "Middle",
    5: "Middle",
    6: "Middle",
    7: "High",
    8: "High",
    9: "Very High",
}

# Die rolled by each unique skill kind. Stable also adds a flat bonus.
UNIQUE_SKILL_DICE: dict[UniqueSkillKind, str] = {
    UniqueSkillKind.stable: "1d10",
    UniqueSkillKind.gamble: "1d20",
    UniqueSkillKind.sustained: "1d10",
}


def _sensitivity(column: int) -> dict[int, int]:
    return {roll: row[column] for roll, row in _PACE_TABLE.items()}


def _strategy(column: int, fixed_value: int, opening: str, mid: str, closing: str) -> Strategy:
    return Strategy(
        name=STRATEGY_NAMES[column],
        fixed_value=fixed_value,
        dice_by_phase=StrategyDice(opening=opening, mid=mid, closing=closing),
        pace_sensitivity=_sensitivity(column),
    )


DEFAULT_STRATEGIES: list[Strategy] = [
    #          col fixed opening  mid     closing
    _strategy(0, 30, "3d8", "3d5", "-1d27"),
    _strategy(1, 15, "3d6", "3d5", "1d7"),
    _strategy(2, 10, "3d5", "3d5", "4d5"),
    _strategy(3, 5, "1d12", "1d15", "1d33"),
    _strategy(4, 0, "1d9", "1d15", "1d46"),
]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_strategy_table(
    custom: Iterable[Strategy] = (), *, custom_first: bool = False
) -> dict[str, Strategy]:
    """Combine the built-in strategies with caller-supplied ones.

    Args:
        custom: Extra strategies, e.g. house-rule variants.
        custom_first: If True, a custom strategy shadows a built-in one with
            the same name. Otherwise the built-in entry wins.

    Returns:
        Mapping of strategy name to Strategy, in lookup order.
    """
    ordered = [*custom, *DEFAULT_STRATEGIES] if custom_first else [*DEFAULT_STRATEGIES, *custom]
    table: dict[str, Strategy] = {}
    for strategy in ordered:
        if strategy.name in table:
            logger.debug("Strategy %r already registered, ignoring duplicate", strategy.name)
            continue
        table[strategy.name] = strategy
    return table


def get_strategy(name: str, table: Mapping[str, Strategy] | None = None) -> Strategy | None:
    """Return the strategy called name, or None if the table does not know it."""
    if table is None:
        table = build_strategy_table()
    return table.get(name)


def pace_modifier(name: str, roll: int, table: Mapping[str, Strategy] | None = None) -> int:
    """Return the score change a pace roll gives a strategy (0 when unlisted)."""
    strategy = get_strategy(name, table)
    if strategy is None:
        return 0
    return strategy.pace_modifier(roll)


def pace_label(roll: int) -> str:
    """Return the display label for a pace roll."""
    return PACE_LABELS.get(roll, "Unknown")


def unique_fixed_bonus(kind: UniqueSkillKind) -> int:
    """Return the flat bonus that accompanies a unique-skill die."""
    if kind == UniqueSkillKind.stable:
        return settings.stable_skill_bonus
    return 0
