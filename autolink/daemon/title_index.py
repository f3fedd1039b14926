"""In-memory index of note titles, kept current from corpus-change events."""

from pathlib import PurePosixPath
from typing import Dict, Iterable, Optional, Tuple

from loguru import logger

from .bus import Event, EventBus, NOTE_CREATED, NOTE_RENAMED, NOTE_DELETED
from .models import NoteRecord


def title_from_identity(identity: str) -> str:
    """Display title of a note: its file name without the extension."""
    return PurePosixPath(identity).stem


class TitleIndex:
    """
    Mapping from note identity to its record.

    Mutations are synchronous and complete before control returns to the
    event loop, so a reader never observes a half-applied rename. Readers
    get a snapshot from ``all_entries`` that later mutations do not touch.
    """

    def __init__(self, extension: str = ".md"):
        self.extension = extension.lower()
        self._entries: Dict[str, NoteRecord] = {}

    def is_note(self, identity: str) -> bool:
        """Only files with the corpus content extension are indexed."""
        return identity.lower().endswith(self.extension)

    def build(self, notes: Iterable[NoteRecord]) -> None:
        """Rebuild the whole index from a full corpus scan."""
        entries = {note.identity: note for note in notes if self.is_note(note.identity)}
        self._entries = entries
        logger.info(f"Indexed {len(entries)} note titles")

    def upsert(self, identity: str, title: Optional[str] = None, created_at: Optional[int] = None) -> bool:
        if not self.is_note(identity):
            return False
        if title is None:
            title = title_from_identity(identity)
        existing = self._entries.get(identity)
        if created_at is None and existing is not None:
            created_at = existing.created_at
        self._entries[identity] = NoteRecord(identity=identity, title=title, created_at=created_at)
        return True

    def remove(self, identity: str) -> bool:
        return self._entries.pop(identity, None) is not None

    def rekey(
        self,
        old_identity: str,
        new_identity: str,
        new_title: Optional[str] = None,
        created_at: Optional[int] = None
    ) -> None:
        """Move an entry to a new identity as one step."""
        old = self._entries.pop(old_identity, None)
        if created_at is None and old is not None:
            created_at = old.created_at
        if not self.upsert(new_identity, new_title, created_at):
            # Renamed to something that is no longer a note
            logger.debug(f"Dropped {old_identity} from index: {new_identity} is not a note")

    def get(self, identity: str) -> Optional[NoteRecord]:
        return self._entries.get(identity)

    def all_entries(self) -> Tuple[NoteRecord, ...]:
        """Snapshot of every indexed note, in insertion order."""
        return tuple(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identity: object) -> bool:
        return identity in self._entries

    # ------------------------------------------------------------------
    # Event channel
    # ------------------------------------------------------------------

    def subscribe(self, bus: EventBus) -> None:
        bus.subscribe("vault.*", self.handle_event)

    def handle_event(self, event: Event) -> None:
        """Apply one corpus-change notification."""
        data = event.data
        if event.type == NOTE_CREATED:
            if self.upsert(data["identity"], created_at=data.get("created_at")):
                logger.debug(f"Indexed new note: {data['identity']}")
        elif event.type == NOTE_RENAMED:
            self.rekey(data["old_identity"], data["identity"], created_at=data.get("created_at"))
            logger.debug(f"Re-indexed note: {data['old_identity']} -> {data['identity']}")
        elif event.type == NOTE_DELETED:
            if self.remove(data["identity"]):
                logger.debug(f"Removed note from index: {data['identity']}")
