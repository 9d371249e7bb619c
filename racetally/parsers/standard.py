"""Standard dialect: one complete result per line."""

from __future__ import annotations

from collections.abc import Sequence

from racetally.models import ParseOutcome, Participant
from racetally.parsers.base import ResultParser, split_lines


class StandardParser(ResultParser):
    """Parses pastes where every line carries its own roll.

    Example::

        ①Silence Suzuka 30+dice3d8=15 (45)
        ②Twin Turbo 15+dice3d6=9 (24)
    """

    def parse_race(self, text: str, roster: Sequence[Participant]) -> ParseOutcome:
        outcome = ParseOutcome()
        for line in split_lines(text):
            dice_line = self.match_dice_line(line, outcome)
            if dice_line is None:
                continue
            participant = self.resolve_participant(dice_line.name, roster, outcome, line)
            if participant is None:
                continue
            result = self.finish(dice_line, participant, dice_line.roll_text, outcome)
            if result is not None:
                outcome.results.append(result)
        return outcome
