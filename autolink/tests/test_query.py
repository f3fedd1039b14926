"""Tests for trigger detection and query extraction."""

import pytest

from autolink.daemon.models import EditorPosition
from autolink.daemon.query import QueryExtractor


@pytest.fixture
def extractor():
    return QueryExtractor(min_trigger_length=2)


def test_extracts_word_before_cursor(extractor):
    line = "see the proj"
    trigger = extractor.on_trigger(line, 3, len(line))

    assert trigger.query == "proj"
    assert trigger.start == EditorPosition(3, 8)
    assert trigger.end == EditorPosition(3, 12)


def test_cursor_mid_line(extractor):
    line = "alpha beta gamma"
    trigger = extractor.on_trigger(line, 0, 10)
    assert trigger.query == "beta"
    assert (trigger.start.ch, trigger.end.ch) == (6, 10)


def test_token_includes_punctuation(extractor):
    trigger = extractor.on_trigger("(foo-bar", 0, 8)
    assert trigger.query == "(foo-bar"
    assert trigger.start.ch == 0


def test_tabs_are_whitespace(extractor):
    trigger = extractor.on_trigger("a\tword", 0, 6)
    assert trigger.query == "word"


def test_too_short(extractor):
    assert extractor.on_trigger("a b", 0, 3) is None
    assert extractor.on_trigger("", 0, 0) is None
    assert extractor.on_trigger("word ", 0, 5) is None


def test_min_length_is_configurable():
    assert QueryExtractor(min_trigger_length=4).on_trigger("abc", 0, 3) is None
    assert QueryExtractor(min_trigger_length=3).on_trigger("abc", 0, 3).query == "abc"


def test_inside_open_link_does_not_trigger(extractor):
    line = "see [[Existing|"
    assert extractor.on_trigger(line, 0, len(line)) is None


def test_inside_open_link_with_space(extractor):
    line = "see [[Some note"
    assert extractor.on_trigger(line, 0, len(line)) is None


def test_after_closed_link_triggers(extractor):
    line = "see [[Alpha]] and be"
    trigger = extractor.on_trigger(line, 0, len(line))
    assert trigger.query == "be"


def test_only_prefix_counts(extractor):
    # The closing marker after the cursor does not close the link
    line = "[[Alpha]]"
    assert extractor.on_trigger(line, 0, 7) is None


def test_cursor_clamped_to_line(extractor):
    trigger = extractor.on_trigger("word", 0, 99)
    assert trigger.query == "word"
    assert trigger.end.ch == 4
