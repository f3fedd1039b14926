"""Candidate matching of note titles and aliases against a query."""

from typing import Any, Callable, List, Optional, Protocol

from .config import Settings
from .models import Candidate
from .title_index import TitleIndex


class AliasSource(Protocol):
    """Front-matter accessor: the raw ``aliases`` field of a note, or None."""

    def aliases(self, identity: str) -> Any:
        ...


def normalize_aliases(raw: Any) -> List[str]:
    """Accept a single string or a list; drop anything that is not a string."""
    if raw is None:
        return []
    if isinstance(raw, str):
        return [raw]
    if isinstance(raw, (list, tuple)):
        return [alias for alias in raw if isinstance(alias, str)]
    return []


class Matcher:
    """Case-folded prefix or substring matching. No fuzzy matching."""

    def __init__(self, alias_source: Optional[AliasSource] = None):
        self.alias_source = alias_source

    @staticmethod
    def matches(text: str, query: str, settings: Settings) -> bool:
        if not settings.case_sensitive:
            text = text.lower()
            query = query.lower()
        if settings.match_start:
            return text.startswith(query)
        return query in text

    def find_candidates(self, query: str, index: TitleIndex, settings: Settings) -> List[Candidate]:
        """All matching titles and aliases, in index order."""
        candidates: List[Candidate] = []
        use_aliases = settings.include_aliases and self.alias_source is not None

        for note in index.all_entries():
            if self.matches(note.title, query, settings):
                candidates.append(Candidate(note.title, note.identity, note.created_at))

            if not use_aliases:
                continue
            for alias in normalize_aliases(self.alias_source.aliases(note.identity)):
                if self.matches(alias, query, settings):
                    candidates.append(Candidate(alias, note.identity, note.created_at, is_alias=True))

        return candidates

    def get_suggestions(
        self,
        query: str,
        index: TitleIndex,
        settings: Settings,
        rank: Optional[Callable[[List[Candidate]], List[Candidate]]] = None
    ) -> List[Candidate]:
        """Matching candidates, ordered by ``rank`` if given, truncated."""
        candidates = self.find_candidates(query, index, settings)
        if rank is not None:
            candidates = rank(candidates)
        return candidates[:settings.max_suggestions]
