"""Shared test fixtures for the racetally test suite.

roster
    Three participants with fixed ids, one per common unique-skill setup.
    Gates are unset; tests that need them use ``with_gates``.

session
    A RaceSession over ``roster`` with the built-in strategy table.

No fixture touches randomness. Dice tests pin rolls with unittest.mock or a
seeded random.Random.
"""

from __future__ import annotations

import pytest

from racetally.models import Participant, RaceSession, UniqueSkill, UniqueSkillKind
from racetally.strategies import END_CLOSER, GREAT_ESCAPE, PACE_CHASER


def make_participant(
    pid: str,
    name: str,
    *,
    strategy: str = PACE_CHASER,
    skill: UniqueSkillKind = UniqueSkillKind.stable,
    phases: frozenset[str] = frozenset(),
    entry_index: int = 1,
    gate: int | None = None,
    score: int = 0,
    **extra,
) -> Participant:
    return Participant(
        id=pid,
        entry_index=entry_index,
        name=name,
        strategy_name=strategy,
        unique_skill=UniqueSkill(kind=skill, active_phases=phases),
        gate=gate,
        cumulative_score=score,
        **extra,
    )


@pytest.fixture
def roster() -> list[Participant]:
    return [
        make_participant(
            "p1",
            "Silence Suzuka",
            strategy=GREAT_ESCAPE,
            skill=UniqueSkillKind.stable,
            phases=frozenset({"opening"}),
            entry_index=1,
        ),
        make_participant(
            "p2",
            "Twin Turbo",
            strategy=GREAT_ESCAPE,
            skill=UniqueSkillKind.gamble,
            phases=frozenset({"mid"}),
            entry_index=2,
        ),
        make_participant(
            "p3",
            "Gold Ship",
            strategy=END_CLOSER,
            skill=UniqueSkillKind.sustained,
            phases=frozenset({"closing"}),
            entry_index=3,
        ),
    ]


@pytest.fixture
def session(roster) -> RaceSession:
    return RaceSession(participants=roster)


def with_gates(roster: list[Participant], *gates: int) -> list[Participant]:
    return [p.model_copy(update={"gate": g}) for p, g in zip(roster, gates)]
