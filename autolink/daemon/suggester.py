"""Editor suggestion provider: trigger, suggest, render and select."""

from typing import List, Optional

from loguru import logger

from .config import SettingsManager
from .editor import Editor
from .matcher import Matcher
from .models import Candidate, EditorPosition, TriggerInfo
from .query import QueryExtractor
from .scoring import ScoringEngine
from .title_index import TitleIndex
from .usage import UsageStatsStore


class SuggestionContext:
    """The open suggestion session: which editor and which span to replace."""

    def __init__(self, editor: Editor, trigger: TriggerInfo):
        self.editor = editor
        self.start = trigger.start
        self.end = trigger.end
        self.query = trigger.query


class NoteTitleSuggester:
    """
    Proposes note links for the word under the cursor.

    The host calls ``on_trigger`` after every cursor or content change,
    ``get_suggestions`` when a trigger fired, ``render_suggestion`` per
    dropdown row and ``select_suggestion`` when the user picks one.
    """

    def __init__(
        self,
        index: TitleIndex,
        matcher: Matcher,
        scoring: ScoringEngine,
        usage: UsageStatsStore,
        settings: SettingsManager
    ):
        self.index = index
        self.matcher = matcher
        self.scoring = scoring
        self.usage = usage
        self.settings = settings
        self.context: Optional[SuggestionContext] = None

    def on_trigger(self, cursor: EditorPosition, editor: Editor) -> Optional[TriggerInfo]:
        """Decide whether to open suggestions at ``cursor``."""
        extractor = QueryExtractor(self.settings.current.min_trigger_length)
        trigger = extractor.on_trigger(editor.get_line(cursor.line), cursor.line, cursor.ch)
        self.context = SuggestionContext(editor, trigger) if trigger else None
        return trigger

    def get_suggestions(self, query: str) -> List[Candidate]:
        """Ranked, truncated suggestions for ``query``."""
        settings = self.settings.current

        def rank(candidates: List[Candidate]) -> List[Candidate]:
            return self.scoring.rank(candidates, settings)

        suggestions = self.matcher.get_suggestions(query, self.index, settings, rank=rank)
        logger.debug(f"{len(suggestions)} suggestions for {query!r}")
        return suggestions

    def render_suggestion(self, candidate: Candidate) -> List[str]:
        """Rows of text for one dropdown entry."""
        rows = [candidate.display_text]
        if self.settings.current.show_path:
            rows.append(candidate.identity)
        return rows

    def select_suggestion(self, candidate: Candidate) -> bool:
        """
        Replace the trigger span with a link to ``candidate``.

        Returns False when there is no open suggestion context.
        """
        if self.context is None:
            return False

        context = self.context
        link = candidate.link
        context.editor.replace_range(link, context.start, context.end)
        context.editor.set_cursor(EditorPosition(context.start.line, context.start.ch + len(link)))
        self.context = None

        if self.settings.current.enable_usage_ranking:
            self.usage.record_selection(candidate.identity)
        return True
