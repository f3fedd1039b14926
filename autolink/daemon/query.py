"""Trigger detection and query extraction for the token under the cursor."""

from typing import Optional

from .models import EditorPosition, TriggerInfo, LINK_OPEN, LINK_CLOSE


class QueryExtractor:
    """Decides whether to offer suggestions at a cursor position."""

    def __init__(self, min_trigger_length: int = 2):
        self.min_trigger_length = min_trigger_length

    @staticmethod
    def token_start(line: str, ch: int) -> int:
        """Column where the run of non-whitespace ending at ``ch`` begins."""
        start = ch
        while start > 0 and not line[start - 1].isspace():
            start -= 1
        return start

    @staticmethod
    def inside_open_link(prefix: str) -> bool:
        """True when the text before the cursor has an unterminated link."""
        return prefix.count(LINK_OPEN) > prefix.count(LINK_CLOSE)

    def on_trigger(self, line: str, line_number: int, ch: int) -> Optional[TriggerInfo]:
        """
        Extract the query under the cursor.

        Returns None when the token is shorter than the minimum trigger
        length or the cursor sits inside a link that is still open.
        """
        ch = max(0, min(ch, len(line)))
        start = self.token_start(line, ch)
        query = line[start:ch]

        if len(query) < self.min_trigger_length:
            return None

        if self.inside_open_link(line[:ch]):
            return None

        return TriggerInfo(
            start=EditorPosition(line_number, start),
            end=EditorPosition(line_number, ch),
            query=query,
        )
