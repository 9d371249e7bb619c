"""Pydantic models for race results, participants and rankings.

Every model is frozen. Functions that "update" a participant or a session
return a fresh copy built with ``model_copy(update=...)``; the caller decides
when to commit it.
"""

from __future__ import annotations

import enum
import uuid

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class UniqueSkillKind(str, enum.Enum):
    """Kind of a participant's unique skill; decides its die and bonus."""

    stable = "stable"
    gamble = "gamble"
    sustained = "sustained"


class PhaseKind(str, enum.Enum):
    """Kind of a race phase, independent of how many mid phases a race has."""

    opening = "opening"
    pace = "pace"
    mid = "mid"
    closing = "closing"


class ParseContext(str, enum.Enum):
    """What a pasted text is expected to contain."""

    race = "race"
    pace = "pace"


class IssueKind(str, enum.Enum):
    """Category of a problem found while reading pasted text."""

    malformed_notation = "malformed_notation"
    malformed_line = "malformed_line"
    unmatched_participant = "unmatched_participant"
    checksum_mismatch = "checksum_mismatch"
    incomplete_block = "incomplete_block"
    pace_cardinality = "pace_cardinality"
    unreadable_roll = "unreadable_roll"
    unexpected_die = "unexpected_die"
    missing_judgment = "missing_judgment"


class JudgmentKind(str, enum.Enum):
    """Tie-break roll kind."""

    photo = "photo"
    margin = "margin"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Dice
# ---------------------------------------------------------------------------


class DiceSpec(_Frozen):
    count: int = Field(gt=0)
    face: int = Field(gt=0)
    negative: bool = False

    def __str__(self) -> str:
        sign = "-" if self.negative else ""
        return f"{sign}{self.count}d{self.face}"


class DiceOutcome(_Frozen):
    """Result of one roll.

    Outcomes recovered from pasted text often carry only the sum, so
    ``rolled_values`` may be empty. When values are present the signed sum
    must agree with them.
    """

    notation: str
    rolled_values: tuple[int, ...] = ()
    signed_sum: int

    @model_validator(mode="after")
    def _check_sum(self) -> DiceOutcome:
        if self.rolled_values:
            total = sum(self.rolled_values)
            if abs(self.signed_sum) != total:
                raise ValueError(
                    f"signed_sum {self.signed_sum} does not match rolled values {self.rolled_values}"
                )
        return self

    @property
    def negative(self) -> bool:
        return self.notation.startswith("-")


# ---------------------------------------------------------------------------
# Strategies and participants
# ---------------------------------------------------------------------------


class StrategyDice(_Frozen):
    opening: str
    mid: str
    closing: str


class Strategy(_Frozen):
    """A named racing strategy."""

    name: str
    fixed_value: int
    dice_by_phase: StrategyDice
    pace_sensitivity: dict[int, int] = Field(default_factory=dict)

    def dice_for(self, kind: PhaseKind) -> str | None:
        """Return the notation rolled in a phase of the given kind, or None for pace."""
        if kind == PhaseKind.pace:
            return None
        return getattr(self.dice_by_phase, kind.value)

    def pace_modifier(self, roll: int) -> int:
        return self.pace_sensitivity.get(roll, 0)


class UniqueSkill(_Frozen):
    kind: UniqueSkillKind
    active_phases: frozenset[str] = frozenset()


class PhaseEntry(_Frozen):
    """Dice reported by one participant for one phase."""

    base_dice: DiceOutcome | None = None
    unique_dice: DiceOutcome | None = None
    manual_modifier: int | None = None


class Judgment(_Frozen):
    photo_roll: int | None = None
    margin_roll: int | None = None


class Participant(_Frozen):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    entry_index: int
    name: str
    strategy_name: str
    unique_skill: UniqueSkill
    gate: int | None = None
    cumulative_score: int = 0
    phase_history: dict[str, PhaseEntry] = Field(default_factory=dict)
    judgment: Judgment = Field(default_factory=Judgment)

    @property
    def order_key(self) -> int:
        """Gate number, or entry index before the gate lottery."""
        return self.gate if self.gate is not None else self.entry_index


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class ParsedResult(_Frozen):
    """One line or block of dice data recovered from pasted text."""

    participant_id: str | None
    name: str
    dice_notation: str
    negative: bool = False
    rolled_value: int
    rolled_values: tuple[int, ...] = ()
    fixed_value: int = 0
    total: int
    stated_total: int | None = None
    checksum_ok: bool = True
    original_text: str = ""

    def to_outcome(self) -> DiceOutcome:
        sign = "-" if self.negative else ""
        return DiceOutcome(
            notation=f"{sign}{self.dice_notation}",
            rolled_values=self.rolled_values,
            signed_sum=self.rolled_value,
        )


class ParseIssue(_Frozen):
    kind: IssueKind
    message: str
    line: str | None = None

    def __str__(self) -> str:
        return self.message


class ParseOutcome(BaseModel):
    """Everything one parse call found: the valid subset plus every problem."""

    results: list[ParsedResult] = Field(default_factory=list)
    issues: list[ParseIssue] = Field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        return [issue.message for issue in self.issues]

    @property
    def ok(self) -> bool:
        return not self.issues

    def add_issue(self, kind: IssueKind, message: str, line: str | None = None) -> None:
        self.issues.append(ParseIssue(kind=kind, message=message, line=line))


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------


class JudgmentRequest(_Frozen):
    """A tie-break roll the GM must ask for before the final ranking."""

    kind: JudgmentKind
    participant_ids: tuple[str, ...]
    representative_id: str
    die: str
    description: str = ""
    upper_representative_id: str | None = None
    lower_representative_id: str | None = None


class RankingEntry(_Frozen):
    participant: Participant
    rank: int = Field(ge=1)
    margin_label: str


# ---------------------------------------------------------------------------
# Race session
# ---------------------------------------------------------------------------


def _default_strategy_table() -> dict[str, Strategy]:
    from racetally.strategies import build_strategy_table

    return build_strategy_table()


class RaceSession(_Frozen):
    """Race-wide state passed explicitly into scoring and ranking."""

    participants: list[Participant] = Field(default_factory=list)
    pace_roll: int | None = None
    strategies: dict[str, Strategy] = Field(default_factory=_default_strategy_table)
    mid_phase_count: int = Field(default=1, ge=1)

    def participant(self, participant_id: str) -> Participant | None:
        for p in self.participants:
            if p.id == participant_id:
                return p
        return None
