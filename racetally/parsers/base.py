"""Shared grammar and contract for the pasted-result parsers.

A dice-bot result line looks like::

    ①Silence Suzuka 30+dice3d8=15 (45)
    [ordinal] NAME SEP [FIX(+|-)] [-]dice<N>d<M>= ROLL [(TOTAL)]

The ordinal prefix is discarded, NAME must match a roster entry exactly,
FIX is the value the GM asked to add, ROLL is what the bot rolled and TOTAL
(optional) is what the player says it all adds up to. A minus operator after
FIX, or a minus directly before "dice", means the roll is subtracted.

Both dialects report problems as ParseIssue entries and keep going, so one
paste shows every problem at once and the valid lines still come back.
"""

from __future__ import annotations

import abc
import functools
import logging
import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from racetally import dice
from racetally.config import Settings, settings
from racetally.models import IssueKind, ParseContext, ParsedResult, ParseOutcome, Participant

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_BREAK_RE = re.compile(r"<br\s*/?>|</p>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")

# Any "dice3d6" style token: a line carrying one is meant to be a result line.
_DICE_KEYWORD_RE = re.compile(r"dice\s*[-－]?[0-9]*d[0-9]+", re.IGNORECASE)

# Leading entry number: "3." or a circled numeral 1-20.
_ORDINAL_RE = re.compile(r"^(?:[0-9０-９]+[.．]|[①-⑳])\s*")

_ROLL_TOKEN_RE = re.compile(r"^[-－]?[0-9]+$")

_MINUS_SIGNS = ("-", "－")


@functools.lru_cache(maxsize=8)
def _line_pattern(marker: str) -> re.Pattern[str]:
    sep = rf"(?:\s|{re.escape(marker)})+"
    return re.compile(
        rf"^(?P<name>.*?){sep}"
        r"(?:(?P<fixed>[0-9]+)\s*(?P<op>[+＋\-－]))?\s*"
        r"(?P<neg>[-－])?dice(?P<dice>[0-9]+d[0-9]+)\s*=\s*"
        r"(?P<roll>.*?)"
        r"(?:\s*[(（](?P<total>[-－]?[0-9]+)[)）])?$",
        re.IGNORECASE,
    )


@functools.lru_cache(maxsize=8)
def _pace_pattern(marker: str, notation: str) -> re.Pattern[str]:
    return re.compile(
        rf"(?:{re.escape(marker)})?\s*dice{re.escape(notation)}\s*=\s*([0-9]+)",
        re.IGNORECASE,
    )


def _to_int(token: str) -> int:
    return int(token.replace("－", "-"))


def split_lines(text: str) -> Iterator[str]:
    """Yield non-blank lines with HTML tags removed.

    ``<br>`` and ``</p>`` count as line breaks, since forum pages often
    arrive as one HTML blob.
    """
    text = _BREAK_RE.sub("\n", text)
    for raw in text.splitlines():
        line = _TAG_RE.sub("", raw).strip()
        if line:
            yield line


def has_dice_keyword(line: str) -> bool:
    return _DICE_KEYWORD_RE.search(line) is not None


def clean_name(raw: str) -> str:
    """Strip the ordinal prefix and surrounding whitespace from a recovered name."""
    return _ORDINAL_RE.sub("", raw.strip(), count=1).strip()


# ---------------------------------------------------------------------------
# Intermediate line
# ---------------------------------------------------------------------------


@dataclass
class DiceLine:
    """A line that satisfied the grammar but has not been validated yet."""

    text: str
    name: str
    dice_notation: str
    negative: bool
    fixed_value: int
    roll_text: str
    stated_total: int | None

    @property
    def has_roll(self) -> bool:
        return bool(self.roll_text)


# ---------------------------------------------------------------------------
# Parser contract
# ---------------------------------------------------------------------------


class ResultParser(abc.ABC):
    """Recovers per-participant dice results from pasted forum text.

    Subclasses implement one dialect of race lines. Pace text is dialect
    independent and handled here.
    """

    def __init__(self, config: Settings | None = None) -> None:
        self.config = config or settings

    def parse(
        self,
        text: str,
        roster: Sequence[Participant],
        context: ParseContext = ParseContext.race,
    ) -> ParseOutcome:
        """Parse pasted text.

        Args:
            text: Raw paste from the forum.
            roster: Registered participants; read only.
            context: ``race`` for per-participant lines, ``pace`` for the
                single GM pace roll.

        Returns:
            ParseOutcome with the accepted results and every issue found.
        """
        if context == ParseContext.pace:
            outcome = self.parse_pace(text)
        else:
            outcome = self.parse_race(text, roster)
        if outcome.issues:
            logger.debug(
                "%s found %d result(s) and %d issue(s)",
                type(self).__name__,
                len(outcome.results),
                len(outcome.issues),
            )
        return outcome

    @abc.abstractmethod
    def parse_race(self, text: str, roster: Sequence[Participant]) -> ParseOutcome:
        """Parse race-phase result lines."""

    def parse_pace(self, text: str) -> ParseOutcome:
        """Find the single pace roll anywhere in the text."""
        outcome = ParseOutcome()
        notation = self.config.pace_notation
        matches = list(_pace_pattern(self.config.marker_token, notation).finditer(text))
        if not matches:
            outcome.add_issue(
                IssueKind.pace_cardinality,
                f"Pace die (dice{notation}) not found. Check that the whole post was copied.",
            )
        elif len(matches) > 1:
            outcome.add_issue(
                IssueKind.pace_cardinality,
                f"Multiple pace dice (dice{notation}) found. Paste only the GM's pace roll.",
            )
        else:
            match = matches[0]
            value = int(match.group(1))
            outcome.results.append(
                ParsedResult(
                    participant_id=None,
                    name="",
                    dice_notation=notation,
                    rolled_value=value,
                    total=value,
                    original_text=match.group(0).strip(),
                )
            )
        return outcome

    # -- shared steps ------------------------------------------------------

    def match_dice_line(self, line: str, outcome: ParseOutcome) -> DiceLine | None:
        """Apply the line grammar.

        Lines without a dice token are ignored silently. Lines with one that
        do not fit the grammar, or whose notation is invalid, are reported.
        """
        if not has_dice_keyword(line):
            return None
        match = _line_pattern(self.config.marker_token).match(line)
        if match is None:
            outcome.add_issue(IssueKind.malformed_line, f"Invalid dice format: {line!r}", line)
            return None

        notation = match.group("dice").lower()
        if not dice.is_valid(notation):
            outcome.add_issue(
                IssueKind.malformed_notation,
                f"Invalid dice notation {notation!r}: count and face must be positive",
                line,
            )
            return None

        fixed = match.group("fixed")
        total = match.group("total")
        return DiceLine(
            text=line,
            name=clean_name(match.group("name")),
            dice_notation=notation,
            negative=match.group("op") in _MINUS_SIGNS or match.group("neg") is not None,
            fixed_value=int(fixed) if fixed else 0,
            roll_text=match.group("roll").strip(),
            stated_total=_to_int(total) if total else None,
        )

    def resolve_participant(
        self, name: str, roster: Sequence[Participant], outcome: ParseOutcome, line: str
    ) -> Participant | None:
        """Return the single roster entry named exactly ``name``."""
        matches = [p for p in roster if p.name == name]
        if len(matches) == 1:
            return matches[0]
        if matches:
            outcome.add_issue(
                IssueKind.unmatched_participant,
                f"Name matches more than one registered participant: {name!r}",
                line,
            )
        else:
            outcome.add_issue(
                IssueKind.unmatched_participant,
                f"Name does not match any registered participant: {name!r}",
                line,
            )
        return None

    def read_roll(
        self, dice_line: DiceLine, roll_text: str, outcome: ParseOutcome
    ) -> tuple[int, tuple[int, ...]] | None:
        """Read the rolled value as (magnitude, individual values).

        The bot prints either the sum ("15") or every die ("5 3 5"); in the
        latter case there must be one value per die.
        """
        tokens = roll_text.split()
        if tokens and all(_ROLL_TOKEN_RE.match(t) for t in tokens):
            if len(tokens) == 1:
                return _to_int(tokens[0]), ()
            values = tuple(_to_int(t) for t in tokens)
            spec = dice.parse(dice_line.dice_notation)
            if len(values) == spec.count and all(1 <= v <= spec.face for v in values):
                return sum(values), values
        outcome.add_issue(
            IssueKind.unreadable_roll,
            f"Could not read dice value {roll_text!r} for {dice_line.name!r}",
            dice_line.text,
        )
        return None

    def finish(
        self,
        dice_line: DiceLine,
        participant: Participant,
        roll_text: str,
        outcome: ParseOutcome,
    ) -> ParsedResult | None:
        """Read the roll, check the stated total and build the result."""
        roll = self.read_roll(dice_line, roll_text, outcome)
        if roll is None:
            return None
        magnitude, values = roll
        rolled = -abs(magnitude) if dice_line.negative else magnitude
        total = dice_line.fixed_value + rolled

        stated = dice_line.stated_total
        if stated is not None and stated != total:
            # Players often write a subtracted roll's total as a positive number.
            if not (dice_line.negative and stated == abs(total)):
                outcome.add_issue(
                    IssueKind.checksum_mismatch,
                    f"Dice total does not add up for {dice_line.name!r}: "
                    f"{dice_line.fixed_value} + ({rolled}) = {total}, but {stated} was stated",
                    dice_line.text,
                )
                return None

        return ParsedResult(
            participant_id=participant.id,
            name=participant.name,
            dice_notation=dice_line.dice_notation,
            negative=dice_line.negative,
            rolled_value=rolled,
            rolled_values=values,
            fixed_value=dice_line.fixed_value,
            total=total,
            stated_total=stated,
            checksum_ok=True,
            original_text=dice_line.text,
        )
