"""Tests for score accumulation and result application."""

from __future__ import annotations

import itertools

import pytest

from racetally.models import (
    DiceOutcome,
    ParsedResult,
    PhaseEntry,
    RaceSession,
    UniqueSkillKind,
)
from racetally.scoring import (
    apply_pace,
    apply_phase_results,
    compute_total,
    is_unique_roll,
    recompute_scores,
    set_manual_modifier,
)
from racetally.strategies import (
    END_CLOSER,
    GREAT_ESCAPE,
    PACE_CHASER,
    build_strategy_table,
)

from conftest import make_participant

TABLE = build_strategy_table()


def _dice(notation: str, total: int) -> DiceOutcome:
    return DiceOutcome(notation=notation, signed_sum=total)


def _result(pid: str, notation: str, rolled: int, *, negative: bool = False) -> ParsedResult:
    return ParsedResult(
        participant_id=pid,
        name=pid,
        dice_notation=notation,
        negative=negative,
        rolled_value=rolled,
        total=rolled,
    )


class TestComputeTotal:
    def test_opening_phase(self):
        p = make_participant(
            "p",
            "Teio",
            strategy=PACE_CHASER,
            phase_history={"opening": PhaseEntry(base_dice=_dice("3d5", 10))},
        )
        # 10 fixed + 10 dice
        assert compute_total(p, TABLE, None) == 20

    def test_no_history_scores_zero(self):
        assert compute_total(make_participant("p", "Teio"), TABLE, None) == 0

    def test_pace_modifier_added_once(self):
        p = make_participant(
            "p",
            "Teio",
            strategy=PACE_CHASER,
            phase_history={
                "opening": PhaseEntry(base_dice=_dice("3d5", 10)),
                "mid1": PhaseEntry(base_dice=_dice("3d5", 6)),
                "mid2": PhaseEntry(base_dice=_dice("3d5", 7)),
            },
        )
        # 20 opening + 6 + 7 + 5 for a very slow pace
        assert compute_total(p, TABLE, 1) == 38
        assert compute_total(p, TABLE, None) == 33

    def test_negative_closing_dice(self):
        p = make_participant(
            "p",
            "Suzuka",
            strategy=GREAT_ESCAPE,
            phase_history={
                "opening": PhaseEntry(base_dice=_dice("3d8", 15)),
                "mid": PhaseEntry(base_dice=_dice("3d5", 9)),
                "closing": PhaseEntry(base_dice=_dice("-1d27", -20)),
            },
        )
        # 30 + 15 + 9 - 20, pace 9 gives -7
        assert compute_total(p, TABLE, 9) == 27

    def test_stable_unique_skill_bonus(self):
        p = make_participant(
            "p",
            "Teio",
            skill=UniqueSkillKind.stable,
            phase_history={
                "opening": PhaseEntry(
                    base_dice=_dice("3d5", 10), unique_dice=_dice("1d10", 4)
                )
            },
        )
        # 10 fixed + 10 + (5 + 4)
        assert compute_total(p, TABLE, None) == 29

    def test_gamble_unique_skill_has_no_bonus(self):
        p = make_participant(
            "p",
            "Teio",
            skill=UniqueSkillKind.gamble,
            phase_history={"mid": PhaseEntry(unique_dice=_dice("1d20", 17))},
        )
        assert compute_total(p, TABLE, None) == 17

    def test_manual_modifier(self):
        p = make_participant(
            "p",
            "Teio",
            phase_history={
                "opening": PhaseEntry(base_dice=_dice("3d5", 10), manual_modifier=-3),
                "closing": PhaseEntry(base_dice=_dice("4d5", 12), manual_modifier=2),
            },
        )
        assert compute_total(p, TABLE, None) == 10 + 10 - 3 + 12 + 2

    def test_unknown_strategy_scores_zero(self, caplog):
        p = make_participant(
            "p",
            "Teio",
            strategy="Sprinter",
            phase_history={"opening": PhaseEntry(base_dice=_dice("3d5", 10))},
        )
        assert compute_total(p, TABLE, 1) == 0
        assert "Sprinter" in caplog.text

    def test_unlisted_pace_roll(self):
        p = make_participant("p", "Teio", strategy=END_CLOSER)
        assert compute_total(p, TABLE, 12) == 0

    def test_phase_order_does_not_matter(self):
        entries = [
            ("opening", PhaseEntry(base_dice=_dice("1d9", 4))),
            ("mid", PhaseEntry(base_dice=_dice("1d15", 11), manual_modifier=1)),
            ("closing", PhaseEntry(base_dice=_dice("1d46", 30), unique_dice=_dice("1d10", 3))),
        ]
        totals = {
            compute_total(
                make_participant("p", "Ship", strategy=END_CLOSER, phase_history=dict(order)),
                TABLE,
                9,
            )
            for order in itertools.permutations(entries)
        }
        assert totals == {0 + 4 + 11 + 1 + 30 + 5 + 3 + 10}


class TestUniqueRoll:
    def test_matches_die_and_phase(self):
        p = make_participant(
            "p", "Teio", skill=UniqueSkillKind.gamble, phases=frozenset({"mid"})
        )
        assert is_unique_roll(p, "mid2", "1d20") is True
        assert is_unique_roll(p, "closing", "1d20") is False
        assert is_unique_roll(p, "mid", "1d10") is False


class TestApplyPhaseResults:
    def test_opening_results(self, session):
        updated = apply_phase_results(
            session,
            "opening",
            [_result("p1", "3d8", 15), _result("p3", "1d9", 4)],
        )

        suzuka, turbo, ship = updated.participants
        assert suzuka.cumulative_score == 45
        assert suzuka.phase_history["opening"].base_dice.signed_sum == 15
        assert turbo.phase_history == {}
        assert ship.cumulative_score == 4

    def test_inputs_not_mutated(self, session):
        apply_phase_results(session, "opening", [_result("p1", "3d8", 15)])
        assert session.participants[0].phase_history == {}
        assert session.participants[0].cumulative_score == 0

    def test_base_and_unique_in_one_batch(self, session):
        updated = apply_phase_results(
            session,
            "opening",
            [_result("p1", "3d8", 15), _result("p1", "1d10", 6)],
        )
        entry = updated.participants[0].phase_history["opening"]
        assert entry.base_dice.signed_sum == 15
        assert entry.unique_dice.signed_sum == 6
        # 30 + 15 + 5 + 6
        assert updated.participants[0].cumulative_score == 56

    def test_reparse_replaces_only_that_die(self, session):
        first = apply_phase_results(
            session, "opening", [_result("p1", "3d8", 15), _result("p1", "1d10", 6)]
        )
        second = apply_phase_results(first, "opening", [_result("p1", "3d8", 20)])

        entry = second.participants[0].phase_history["opening"]
        assert entry.base_dice.signed_sum == 20
        assert entry.unique_dice.signed_sum == 6

    def test_negative_result_keeps_sign(self, session):
        updated = apply_phase_results(
            session, "closing", [_result("p2", "1d27", -20, negative=True)]
        )
        base = updated.participants[1].phase_history["closing"].base_dice
        assert base.notation == "-1d27"
        assert base.signed_sum == -20

    def test_unknown_participant_ignored(self, session):
        updated = apply_phase_results(session, "mid", [_result("zz", "3d5", 9)])
        assert updated.participants == session.participants

    def test_pace_phase_rejected(self, session):
        with pytest.raises(ValueError):
            apply_phase_results(session, "pace", [])


class TestPaceAndCorrections:
    def test_apply_pace_rescores(self, session):
        opened = apply_phase_results(session, "opening", [_result("p1", "3d8", 15)])
        paced = apply_pace(opened, 1)

        assert paced.pace_roll == 1
        # Great Escape gains 12 on a very slow pace
        assert paced.participants[0].cumulative_score == 57
        assert paced.participants[2].cumulative_score == -5

    def test_recompute_is_idempotent(self, session):
        paced = apply_pace(session, 9)
        assert recompute_scores(recompute_scores(paced)) == recompute_scores(paced)

    def test_manual_modifier(self, session):
        opened = apply_phase_results(session, "opening", [_result("p3", "1d9", 4)])
        corrected = set_manual_modifier(opened, "p3", "opening", 3)

        assert corrected.participants[2].cumulative_score == 7
        assert corrected.participants[2].phase_history["opening"].base_dice.signed_sum == 4

    def test_unknown_strategy_in_session(self):
        table = build_strategy_table()
        session = RaceSession(
            participants=[make_participant("x", "Ship", strategy="Sprinter")],
            strategies=table,
        )
        updated = apply_phase_results(session, "opening", [_result("x", "2d6", 7)])
        assert updated.participants[0].cumulative_score == 0
