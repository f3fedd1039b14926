"""Editor collaborator: the text buffer the suggester reads and edits."""

from typing import List, Protocol

from .models import EditorPosition


class Editor(Protocol):
    """What the suggester needs from the host editor."""

    def get_line(self, line: int) -> str:
        ...

    def replace_range(self, text: str, start: EditorPosition, end: EditorPosition) -> None:
        ...

    def set_cursor(self, pos: EditorPosition) -> None:
        ...


class TextBuffer:
    """In-memory editor buffer, used by the CLI and tests."""

    def __init__(self, text: str = ""):
        self.lines: List[str] = text.split("\n")
        last = len(self.lines) - 1
        self.cursor = EditorPosition(last, len(self.lines[last]))

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def get_line(self, line: int) -> str:
        if 0 <= line < len(self.lines):
            return self.lines[line]
        return ""

    def get_cursor(self) -> EditorPosition:
        return self.cursor

    def replace_range(self, text: str, start: EditorPosition, end: EditorPosition) -> None:
        """Replace the text between two positions (end exclusive)."""
        before = self.lines[start.line][:start.ch]
        after = self.lines[end.line][end.ch:]
        replacement = (before + text + after).split("\n")
        self.lines[start.line:end.line + 1] = replacement

    def set_cursor(self, pos: EditorPosition) -> None:
        self.cursor = pos
