"""Score accumulation across race phases.

A participant's cumulative score is always recomputed from their phase
history, never adjusted incrementally:

    opening entry   strategy fixed value + base dice
    every entry     + unique-skill bonus and die (if rolled) + manual modifier
    non-opening     + base dice
    pace rolled     + the strategy's pace modifier, exactly once

Phase contributions commute, so history order does not matter.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from racetally.models import (
    DiceOutcome,
    ParsedResult,
    Participant,
    PhaseEntry,
    PhaseKind,
    RaceSession,
    Strategy,
)
from racetally.phases import OPENING, phase_kind, phase_matches
from racetally.strategies import UNIQUE_SKILL_DICE, unique_fixed_bonus

logger = logging.getLogger(__name__)


def compute_total(
    participant: Participant,
    strategy_table: Mapping[str, Strategy],
    pace_roll: int | None,
) -> int:
    """Return the participant's cumulative score.

    Args:
        participant: Participant snapshot with its phase history.
        strategy_table: Strategies by name.
        pace_roll: The race's pace roll, or None before the pace phase.

    Returns:
        Total score. 0 when the participant's strategy is unknown.
    """
    strategy = strategy_table.get(participant.strategy_name)
    if strategy is None:
        logger.warning(
            "Unknown strategy %r for %s, scoring as 0", participant.strategy_name, participant.name
        )
        return 0

    bonus = unique_fixed_bonus(participant.unique_skill.kind)
    total = 0
    for phase_id, entry in participant.phase_history.items():
        if phase_id == OPENING:
            total += strategy.fixed_value
        total += _entry_contribution(entry, bonus)

    if pace_roll is not None:
        total += strategy.pace_modifier(pace_roll)
    return total


def _entry_contribution(entry: PhaseEntry, unique_bonus: int) -> int:
    value = 0
    if entry.base_dice is not None:
        value += entry.base_dice.signed_sum
    if entry.unique_dice is not None:
        value += unique_bonus + entry.unique_dice.signed_sum
    if entry.manual_modifier:
        value += entry.manual_modifier
    return value


def is_unique_roll(participant: Participant, phase_id: str, notation: str) -> bool:
    """Return True if a roll of ``notation`` in this phase is the participant's unique skill."""
    skill = participant.unique_skill
    if notation.lstrip("-") != UNIQUE_SKILL_DICE[skill.kind]:
        return False
    return any(phase_matches(active, phase_id) for active in skill.active_phases)


def recompute_scores(session: RaceSession) -> RaceSession:
    """Return a session with every cumulative score recomputed."""
    participants = [
        p.model_copy(
            update={"cumulative_score": compute_total(p, session.strategies, session.pace_roll)}
        )
        for p in session.participants
    ]
    return session.model_copy(update={"participants": participants})


def apply_pace(session: RaceSession, roll: int) -> RaceSession:
    """Record the race's pace roll and rescore the field."""
    return recompute_scores(session.model_copy(update={"pace_roll": roll}))


def apply_phase_results(
    session: RaceSession, phase_id: str, results: Iterable[ParsedResult]
) -> RaceSession:
    """Merge parsed results for one phase into the participants' history.

    Each result replaces either the base or the unique die of the phase
    entry; the other fields of the entry are carried over. Participants
    without results are returned unchanged.

    Args:
        session: Current race session; not modified.
        phase_id: Phase the results belong to, e.g. "opening" or "mid2".
        results: Results from a race-context parse.

    Returns:
        New session with updated history and scores.

    Raises:
        ValueError: If phase_id is the pace phase or not a race phase.
    """
    if phase_kind(phase_id) == PhaseKind.pace:
        raise ValueError("Pace results are applied with apply_pace")

    updated: dict[str, Participant] = {}
    for result in results:
        if result.participant_id is None:
            continue
        participant = updated.get(result.participant_id) or session.participant(
            result.participant_id
        )
        if participant is None:
            logger.debug("Result for unknown participant %s ignored", result.participant_id)
            continue

        outcome: DiceOutcome = result.to_outcome()
        previous = participant.phase_history.get(phase_id, PhaseEntry())
        if is_unique_roll(participant, phase_id, outcome.notation):
            entry = previous.model_copy(update={"unique_dice": outcome})
        else:
            entry = previous.model_copy(update={"base_dice": outcome})

        history = {**participant.phase_history, phase_id: entry}
        participant = participant.model_copy(update={"phase_history": history})
        updated[participant.id] = participant.model_copy(
            update={
                "cumulative_score": compute_total(
                    participant, session.strategies, session.pace_roll
                )
            }
        )

    participants = [updated.get(p.id, p) for p in session.participants]
    return session.model_copy(update={"participants": participants})


def set_manual_modifier(
    session: RaceSession, participant_id: str, phase_id: str, modifier: int | None
) -> RaceSession:
    """Return a session with a GM correction recorded for one participant and phase."""
    participant = session.participant(participant_id)
    if participant is None:
        raise ValueError(f"Unknown participant: {participant_id!r}")
    previous = participant.phase_history.get(phase_id, PhaseEntry())
    history = {
        **participant.phase_history,
        phase_id: previous.model_copy(update={"manual_modifier": modifier}),
    }
    participant = participant.model_copy(update={"phase_history": history})
    participant = participant.model_copy(
        update={
            "cumulative_score": compute_total(participant, session.strategies, session.pace_roll)
        }
    )
    participants = [participant if p.id == participant_id else p for p in session.participants]
    return session.model_copy(update={"participants": participants})
