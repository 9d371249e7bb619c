"""Reading tie-break rolls back from the forum.

After the closing phase the GM asks for photo judgments (1d5, one line per
tied participant) and margin judgments (1d2, one line per one-point gap,
named "UPPER vs LOWER")::

    Special Week dice1d5=4
    Silence Suzuka dice1d5=2
    Twin Turbo vs Mejiro McQueen dice1d2=1

Names are not matched against the roster while reading, because a margin
line names two participants at once; matching happens against the open
judgment requests instead.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence

from racetally import dice
from racetally.config import Settings
from racetally.models import (
    IssueKind,
    Judgment,
    JudgmentKind,
    JudgmentRequest,
    ParsedResult,
    ParseOutcome,
    Participant,
)
from racetally.parsers.base import ResultParser, split_lines

_VERSUS_RE = re.compile(r"\s+vs\.?\s+", re.IGNORECASE)


class JudgmentLineParser(ResultParser):
    """Lenient line parser: grammar and roll checks only, no roster matching."""

    def parse_race(self, text: str, roster: Sequence[Participant] = ()) -> ParseOutcome:
        outcome = ParseOutcome()
        for line in split_lines(text):
            line = line.replace(self.config.marker_token, " ").strip()
            dice_line = self.match_dice_line(line, outcome)
            if dice_line is None:
                continue
            roll = self.read_roll(dice_line, dice_line.roll_text, outcome)
            if roll is None:
                continue
            value, values = roll
            outcome.results.append(
                ParsedResult(
                    participant_id=None,
                    name=dice_line.name,
                    dice_notation=dice_line.dice_notation,
                    rolled_value=value,
                    rolled_values=values,
                    total=value,
                    original_text=line,
                )
            )
        return outcome


def parse_judgment_lines(text: str, config: Settings | None = None) -> ParseOutcome:
    """Parse judgment roll lines without matching names."""
    return JudgmentLineParser(config).parse_race(text)


def collect_judgments(
    text: str,
    roster: Sequence[Participant],
    requests: Sequence[JudgmentRequest],
    config: Settings | None = None,
) -> tuple[dict[str, Judgment], ParseOutcome]:
    """Match pasted judgment rolls to open requests.

    Args:
        text: Pasted judgment rolls.
        roster: Participants of the race.
        requests: Requests returned by ``ranking.detect_judgments``.
        config: Settings override.

    Returns:
        Tuple of (judgment per participant id, parse outcome). The mapping
        already merges each participant's existing judgment; the outcome's
        results carry the participant each roll was credited to.
    """
    parser = JudgmentLineParser(config)
    photo_die = parser.config.photo_die
    margin_die = parser.config.margin_die
    parsed = parser.parse_race(text)
    outcome = ParseOutcome(issues=list(parsed.issues))

    by_id = {p.id: p for p in roster}
    updates: dict[str, Judgment] = {}

    def current(participant_id: str) -> Judgment:
        if participant_id in updates:
            return updates[participant_id]
        return by_id[participant_id].judgment

    photo_ids = {
        pid for req in requests if req.kind == JudgmentKind.photo for pid in req.participant_ids
    }
    margin_requests = [req for req in requests if req.kind == JudgmentKind.margin]

    for result in parsed.results:
        line = result.original_text
        if result.dice_notation == photo_die:
            matches = [p for p in roster if p.name == result.name]
            if len(matches) != 1 or matches[0].id not in photo_ids:
                outcome.add_issue(
                    IssueKind.unmatched_participant,
                    f"No photo judgment is pending for {result.name!r}",
                    line,
                )
                continue
            if not _in_range(result.rolled_value, photo_die):
                outcome.add_issue(
                    IssueKind.unreadable_roll,
                    f"Photo judgment roll {result.rolled_value} is outside dice{photo_die}",
                    line,
                )
                continue
            target = matches[0].id
            updates[target] = current(target).model_copy(update={"photo_roll": result.rolled_value})
        elif result.dice_notation == margin_die:
            request = _find_margin_request(result.name, margin_requests, by_id)
            if request is None:
                outcome.add_issue(
                    IssueKind.unmatched_participant,
                    f"No margin judgment is pending for {result.name!r}",
                    line,
                )
                continue
            if not _in_range(result.rolled_value, margin_die):
                outcome.add_issue(
                    IssueKind.unreadable_roll,
                    f"Margin judgment roll {result.rolled_value} is outside dice{margin_die}",
                    line,
                )
                continue
            target = request.representative_id
            updates[target] = current(target).model_copy(update={"margin_roll": result.rolled_value})
        else:
            outcome.add_issue(
                IssueKind.unexpected_die,
                f"Unexpected judgment die {result.dice_notation!r} (expected {photo_die} or {margin_die})",
                line,
            )
            continue
        outcome.results.append(result.model_copy(update={"participant_id": target}))

    for name, label in _missing(requests, by_id, current):
        outcome.add_issue(IssueKind.missing_judgment, f"Missing {label} for {name!r}")

    return updates, outcome


def apply_judgments(
    roster: Iterable[Participant], updates: Mapping[str, Judgment]
) -> list[Participant]:
    """Return a new roster with the collected judgment rolls attached."""
    return [
        p.model_copy(update={"judgment": updates[p.id]}) if p.id in updates else p for p in roster
    ]


def _in_range(value: int, notation: str) -> bool:
    return 1 <= value <= dice.parse(notation).face


def _find_margin_request(
    name: str,
    requests: Sequence[JudgmentRequest],
    by_id: Mapping[str, Participant],
) -> JudgmentRequest | None:
    names = _VERSUS_RE.split(name)
    if len(names) != 2:
        return None
    pair = {n.strip() for n in names}
    for request in requests:
        upper = by_id.get(request.upper_representative_id or "")
        lower = by_id.get(request.lower_representative_id or "")
        if upper is not None and lower is not None and pair == {upper.name, lower.name}:
            return request
    return None


def _missing(requests, by_id, current):
    for request in requests:
        if request.kind == JudgmentKind.photo:
            for pid in request.participant_ids:
                if current(pid).photo_roll is None:
                    yield by_id[pid].name, f"photo judgment (dice{request.die})"
        elif current(request.representative_id).margin_roll is None:
            yield by_id[request.representative_id].name, f"margin judgment (dice{request.die})"
