"""Final standings, tie-break detection and finish margins.

Scores are compared in points; four points make one length. Ties and
one-point gaps cannot be told apart by score alone, so the GM asks for extra
rolls first:

  equal score           photo judgment, 1d5 per tied participant
                        (higher wins, equal rolls are a dead heat)
  one point apart       margin judgment, 1d2 by the upper group's
                        representative (1 = head, 2 = neck)

A group's representative is its member with the smallest gate.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from fractions import Fraction

from racetally.config import settings
from racetally.models import JudgmentKind, JudgmentRequest, Participant, RankingEntry

LEADER_LABEL = "---"
DEAD_HEAT_LABEL = "dead heat"
NOSE_LABEL = "nose"
ONE_POINT_LABEL = "1"
MARGIN_LABELS: dict[int, str] = {1: "head", 2: "neck"}

POINTS_PER_LENGTH = 4

_QUARTERS: dict[Fraction, str] = {
    Fraction(0): "",
    Fraction(1, 4): "1/4",
    Fraction(1, 2): "1/2",
    Fraction(3, 4): "3/4",
}


def sort_by_standing(roster: Iterable[Participant]) -> list[Participant]:
    """Sort by score (high first), then gate (low first; entry index before the lottery)."""
    return sorted(roster, key=lambda p: (-p.cumulative_score, p.order_key))


def group_by_score(roster: Iterable[Participant]) -> list[list[Participant]]:
    """Split the standing order into maximal runs of equal score."""
    groups: list[list[Participant]] = []
    for p in sort_by_standing(roster):
        if groups and groups[-1][0].cumulative_score == p.cumulative_score:
            groups[-1].append(p)
        else:
            groups.append([p])
    return groups


def detect_judgments(roster: Iterable[Participant]) -> list[JudgmentRequest]:
    """Return the photo and margin judgments needed before the final ranking.

    Photo requests come first, in standing order, followed by margin
    requests.
    """
    groups = group_by_score(roster)
    requests: list[JudgmentRequest] = []

    for group in groups:
        if len(group) >= 2:
            requests.append(
                JudgmentRequest(
                    kind=JudgmentKind.photo,
                    participant_ids=tuple(p.id for p in group),
                    representative_id=group[0].id,
                    die=settings.photo_die,
                    description=f"Photo judgment: {len(group)} tied on {group[0].cumulative_score}",
                )
            )

    for upper, lower in zip(groups, groups[1:]):
        if upper[0].cumulative_score - lower[0].cumulative_score == 1:
            requests.append(
                JudgmentRequest(
                    kind=JudgmentKind.margin,
                    participant_ids=(upper[0].id, lower[0].id),
                    representative_id=upper[0].id,
                    die=settings.margin_die,
                    description=f"{upper[0].name} vs {lower[0].name}",
                    upper_representative_id=upper[0].id,
                    lower_representative_id=lower[0].id,
                )
            )

    return requests


def format_lengths(lengths: Fraction | float) -> str:
    """Render a distance in lengths as "2 1/2", "3/4" or "1".

    Values are rounded down to the nearest quarter length.
    """
    value = Fraction(lengths).limit_denominator(POINTS_PER_LENGTH)
    whole = int(value)
    quarter = Fraction(int((value - whole) * POINTS_PER_LENGTH), POINTS_PER_LENGTH)
    fraction = _QUARTERS[quarter]
    if whole == 0:
        return fraction or "0"
    if not fraction:
        return str(whole)
    return f"{whole} {fraction}"


def finalize_ranking(roster: Sequence[Participant]) -> list[RankingEntry]:
    """Rank the field once judgment rolls are in.

    Sort order is score, then photo roll (missing counts as 0), then gate.
    The leader gets ``LEADER_LABEL``; everyone else is labelled by their gap
    to the participant directly ahead.
    """
    ordered = sorted(
        roster,
        key=lambda p: (-p.cumulative_score, -(p.judgment.photo_roll or 0), p.order_key),
    )

    entries: list[RankingEntry] = []
    for position, current in enumerate(ordered, start=1):
        if not entries:
            entries.append(RankingEntry(participant=current, rank=1, margin_label=LEADER_LABEL))
            continue

        previous = entries[-1]
        prev = previous.participant
        gap = prev.cumulative_score - current.cumulative_score
        rank = position

        if gap == 0:
            if (prev.judgment.photo_roll or 0) == (current.judgment.photo_roll or 0):
                rank = previous.rank
                label = DEAD_HEAT_LABEL
            else:
                label = NOSE_LABEL
        elif gap == 1:
            label = _one_point_label(roster, prev.cumulative_score)
        else:
            label = format_lengths(Fraction(gap, POINTS_PER_LENGTH))

        entries.append(RankingEntry(participant=current, rank=rank, margin_label=label))
    return entries


def _one_point_label(roster: Sequence[Participant], upper_score: int) -> str:
    for p in roster:
        if p.cumulative_score == upper_score and p.judgment.margin_roll is not None:
            return MARGIN_LABELS.get(p.judgment.margin_roll, ONE_POINT_LABEL)
    return ONE_POINT_LABEL
