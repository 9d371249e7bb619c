"""Tests for content-based parser selection."""

from racetally.config import Settings
from racetally.models import ParseContext
from racetally.parsers.emoji import EmojiParser
from racetally.parsers.selector import parse_text, select_parser
from racetally.parsers.standard import StandardParser


def test_plain_text_selects_standard():
    assert isinstance(select_parser("①Silence Suzuka 30+dice3d8=15 (45)"), StandardParser)


def test_marker_selects_block_dialect():
    assert isinstance(select_parser("Silence Suzuka 15+🎲 dice3d6="), EmojiParser)


def test_marker_anywhere_counts():
    text = "Silence Suzuka 30+dice3d8=15 (45)\nthanks 🎲"
    assert isinstance(select_parser(text), EmojiParser)


def test_selection_ignores_context():
    assert isinstance(select_parser(""), StandardParser)


def test_selected_parser_uses_given_settings():
    config = Settings(marker_token="[d]")
    parser = select_parser("Gold Ship [d] dice1d9=3", config)
    assert isinstance(parser, EmojiParser)
    assert parser.config is config


def test_parse_text_runs_selected_parser(roster):
    outcome = parse_text("Gold Ship 5+🎲 dice3d6=\n合計: 10", roster, ParseContext.race)
    assert outcome.ok
    assert outcome.results[0].total == 15
