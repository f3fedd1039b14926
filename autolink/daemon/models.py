"""Data models for the autolink engine."""

import time
from dataclasses import dataclass
from typing import Optional


MS_PER_DAY = 24 * 60 * 60 * 1000

LINK_OPEN = "[["
LINK_CLOSE = "]]"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class NoteRecord:
    """A note known to the title index."""
    identity: str  # vault-relative path
    title: str
    created_at: Optional[int] = None  # epoch ms


@dataclass(frozen=True)
class Candidate:
    """A (display text, target note) pair proposed as a suggestion."""
    display_text: str
    identity: str
    created_at: Optional[int] = None
    is_alias: bool = False

    @property
    def link(self) -> str:
        return f"{LINK_OPEN}{self.display_text}{LINK_CLOSE}"


@dataclass
class UsageRecord:
    """Selection history for a single note."""
    count: int = 0
    last_used: Optional[int] = None  # epoch ms, unset until first selection

    @property
    def has_history(self) -> bool:
        return self.last_used is not None


@dataclass(frozen=True)
class EditorPosition:
    """Zero-based line / character position in the editor buffer."""
    line: int
    ch: int


@dataclass(frozen=True)
class TriggerInfo:
    """Span of the token under the cursor and the query extracted from it."""
    start: EditorPosition
    end: EditorPosition
    query: str
