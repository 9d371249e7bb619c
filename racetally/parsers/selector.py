"""Pick the parser for a paste by looking at its content."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from racetally.config import Settings, settings
from racetally.models import ParseContext, ParseOutcome, Participant
from racetally.parsers.base import ResultParser
from racetally.parsers.emoji import EmojiParser
from racetally.parsers.standard import StandardParser

logger = logging.getLogger(__name__)


def select_parser(text: str, config: Settings | None = None) -> ResultParser:
    """Return the block parser if the marker token appears anywhere, else the standard one."""
    config = config or settings
    if config.marker_token in text:
        logger.debug("Marker token found, using block dialect")
        return EmojiParser(config)
    return StandardParser(config)


def parse_text(
    text: str,
    roster: Sequence[Participant],
    context: ParseContext = ParseContext.race,
    config: Settings | None = None,
) -> ParseOutcome:
    """Select a parser for text and run it."""
    return select_parser(text, config).parse(text, roster, context)
