"""Tests for the suggestion provider: trigger, suggest, render, select."""

import pytest

from autolink.daemon.config import Settings, SettingsManager
from autolink.daemon.editor import TextBuffer
from autolink.daemon.matcher import Matcher
from autolink.daemon.models import Candidate, EditorPosition, NoteRecord, UsageRecord, MS_PER_DAY
from autolink.daemon.scoring import ScoringEngine
from autolink.daemon.suggester import NoteTitleSuggester
from autolink.daemon.title_index import TitleIndex
from autolink.daemon.usage import UsageStatsStore

from conftest import FakeAliases, NOW


@pytest.fixture
def suggester(clock):
    index = TitleIndex()
    index.build([
        NoteRecord("Alpha.md", "Alpha", NOW - 400 * MS_PER_DAY),
        NoteRecord("Alphabet.md", "Alphabet", NOW - 400 * MS_PER_DAY),
        NoteRecord("Artificial Intelligence.md", "Artificial Intelligence", NOW - 400 * MS_PER_DAY),
    ])
    aliases = FakeAliases({"Artificial Intelligence.md": ["AI", "ML"]})
    usage = UsageStatsStore(clock=clock)
    manager = SettingsManager(Settings(min_trigger_length=2))
    return NoteTitleSuggester(index, Matcher(aliases), ScoringEngine(usage, clock=clock), usage, manager)


def trigger_at_end(suggester, text):
    buffer = TextBuffer(text)
    return buffer, suggester.on_trigger(buffer.get_cursor(), buffer)


def test_trigger_and_suggest(suggester):
    buffer, trigger = trigger_at_end(suggester, "read alp")
    assert trigger.query == "alp"
    assert [c.display_text for c in suggester.get_suggestions(trigger.query)] == ["Alpha", "Alphabet"]


def test_no_trigger_clears_context(suggester):
    trigger_at_end(suggester, "read alp")
    _, trigger = trigger_at_end(suggester, "read [[Alp")
    assert trigger is None
    assert suggester.context is None


def test_select_inserts_link_and_moves_cursor(suggester, clock):
    buffer, trigger = trigger_at_end(suggester, "read alp today")
    # Put the cursor right after "alp"
    buffer.set_cursor(EditorPosition(0, 8))
    trigger = suggester.on_trigger(buffer.get_cursor(), buffer)
    candidate = suggester.get_suggestions(trigger.query)[1]

    assert suggester.select_suggestion(candidate)
    assert buffer.text == "read [[Alphabet]] today"
    assert buffer.get_cursor() == EditorPosition(0, len("read [[Alphabet]]"))
    assert suggester.usage.get("Alphabet.md") == UsageRecord(1, clock.now)


def test_select_alias_links_alias_text(suggester):
    buffer, trigger = trigger_at_end(suggester, "the AI")
    alias = [c for c in suggester.get_suggestions(trigger.query) if c.is_alias][0]

    suggester.select_suggestion(alias)
    assert buffer.text == "the [[AI]]"
    assert suggester.usage.get("Artificial Intelligence.md").count == 1


def test_select_without_context(suggester):
    _, trigger = trigger_at_end(suggester, "x")
    assert trigger is None
    assert not suggester.select_suggestion(Candidate("Alpha", "Alpha.md"))


def test_selection_changes_ranking(suggester):
    for _ in range(2):
        buffer, trigger = trigger_at_end(suggester, "alp")
        alphabet = [c for c in suggester.get_suggestions(trigger.query) if c.display_text == "Alphabet"][0]
        suggester.select_suggestion(alphabet)

    _, trigger = trigger_at_end(suggester, "alp")
    assert [c.display_text for c in suggester.get_suggestions(trigger.query)] == ["Alphabet", "Alpha"]


def test_usage_not_tracked_when_ranking_disabled(suggester):
    suggester.settings.update(enable_usage_ranking=False)
    buffer, trigger = trigger_at_end(suggester, "alp")
    suggester.select_suggestion(suggester.get_suggestions(trigger.query)[0])

    assert buffer.text == "[[Alpha]]"
    assert len(suggester.usage) == 0


def test_render_suggestion(suggester):
    _, trigger = trigger_at_end(suggester, "alp")
    candidate = suggester.get_suggestions(trigger.query)[0]
    assert suggester.render_suggestion(candidate) == ["Alpha"]

    suggester.settings.update(show_path=True)
    assert suggester.render_suggestion(candidate) == ["Alpha", "Alpha.md"]


def test_settings_read_per_query(suggester):
    suggester.settings.update(max_suggestions=1)
    assert len(suggester.get_suggestions("alp")) == 1

    suggester.settings.update(min_trigger_length=4)
    _, trigger = trigger_at_end(suggester, "alp")
    assert trigger is None
