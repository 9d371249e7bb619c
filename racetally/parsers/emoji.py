"""Block dialect, printed by the bot that prefixes every roll with a marker.

Besides inline lines, this bot splits multi-die rolls over several lines::

    ② Special Week 15+🎲 dice3d6=
    1st: 6
    2nd: 6
    3rd: 3
    合計: 15

The header opens a block for the named participant, anything in between is
ignored, and the sum line closes the block and supplies the roll.
"""

from __future__ import annotations

import functools
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

from racetally.models import IssueKind, ParseOutcome, Participant
from racetally.parsers.base import DiceLine, ResultParser, has_dice_keyword, split_lines

logger = logging.getLogger(__name__)


@functools.lru_cache(maxsize=8)
def _sum_pattern(labels: tuple[str, ...]) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(label) for label in labels)
    return re.compile(rf"^(?:{alternatives})\s*[:：]\s*(?P<value>[-－]?[0-9]+)", re.IGNORECASE)


@dataclass
class _OpenBlock:
    header: DiceLine
    participant: Participant


class EmojiParser(ResultParser):
    """Parses marker-decorated pastes, including multi-line blocks."""

    def parse_race(self, text: str, roster: Sequence[Participant]) -> ParseOutcome:
        outcome = ParseOutcome()
        sum_re = _sum_pattern(tuple(self.config.sum_labels))
        pending: _OpenBlock | None = None

        for line in split_lines(text):
            stripped = self._strip_marker(line)

            if has_dice_keyword(stripped):
                if pending is not None:
                    self._report_incomplete(pending, outcome)
                    pending = None

                dice_line = self.match_dice_line(stripped, outcome)
                if dice_line is None:
                    continue
                participant = self.resolve_participant(dice_line.name, roster, outcome, stripped)
                if participant is None:
                    continue

                if dice_line.has_roll:
                    result = self.finish(dice_line, participant, dice_line.roll_text, outcome)
                    if result is not None:
                        outcome.results.append(result)
                else:
                    logger.debug("Opened block for %s (%s)", participant.name, dice_line.dice_notation)
                    pending = _OpenBlock(header=dice_line, participant=participant)
                continue

            if pending is None:
                continue
            match = sum_re.match(line)
            if match is None:
                continue
            result = self.finish(pending.header, pending.participant, match.group("value"), outcome)
            if result is not None:
                outcome.results.append(result)
            logger.debug("Closed block for %s", pending.participant.name)
            pending = None

        if pending is not None:
            self._report_incomplete(pending, outcome)
        return outcome

    def _strip_marker(self, line: str) -> str:
        return line.replace(self.config.marker_token, " ").strip()

    @staticmethod
    def _report_incomplete(block: _OpenBlock, outcome: ParseOutcome) -> None:
        outcome.add_issue(
            IssueKind.incomplete_block,
            f"No sum line found for {block.participant.name!r}; the block may have been cut off",
            block.header.text,
        )
