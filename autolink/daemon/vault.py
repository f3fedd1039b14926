"""File-system corpus: markdown notes in a vault directory."""

import os
import time
from pathlib import Path
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple
import aiofiles
import frontmatter
import yaml
from loguru import logger

from .bus import EventBus, note_created, note_renamed, note_deleted
from .models import NoteRecord, now_ms
from .title_index import title_from_identity


_INVALID_TITLE_CHARS = set('/\\:')


def parse_created(value: Any) -> Optional[int]:
    """Epoch ms from a front-matter ``created`` value, or None if unusable."""
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return round(value.timestamp() * 1000)
    if isinstance(value, date):
        return round(datetime(value.year, value.month, value.day, tzinfo=timezone.utc).timestamp() * 1000)
    return None


class Vault:
    """
    Host file store for notes.

    Identities are vault-relative POSIX paths. Create, rename and delete go
    through this class so every change is announced on the event bus.

    Aliases are served from a cache filled by ``list_notes``. A cached entry
    is trusted for ``refresh_interval`` seconds before its file is stat'ed
    again, so a query does not touch the disk for every note.
    """

    def __init__(
        self,
        vault_path: Path,
        event_bus: Optional[EventBus] = None,
        extension: str = ".md",
        refresh_interval: float = 5.0,
        monotonic: Callable[[], float] = time.monotonic
    ):
        self.vault_path = Path(vault_path)
        self.event_bus = event_bus
        self.extension = extension
        self.refresh_interval = refresh_interval
        self._monotonic = monotonic
        # identity -> (mtime_ns, checked_at, raw aliases)
        self._alias_cache: Dict[str, Tuple[int, float, Any]] = {}

    def path_for(self, identity: str) -> Path:
        return self.vault_path / identity

    def identity_for(self, path: Path) -> str:
        return path.relative_to(self.vault_path).as_posix()

    @staticmethod
    def _file_created_ms(stat: os.stat_result) -> int:
        # st_ctime is the last metadata change on Linux, not creation
        birth = getattr(stat, "st_birthtime", None)
        if birth:
            return int(birth * 1000)
        return stat.st_mtime_ns // 1_000_000

    def _front_matter(self, identity: str) -> Dict[str, Any]:
        try:
            post = frontmatter.load(str(self.path_for(identity)))
        except (OSError, UnicodeDecodeError, yaml.YAMLError, ValueError) as e:
            logger.debug(f"Unreadable front matter in {identity}: {e}")
            return {}
        return post.metadata if isinstance(post.metadata, dict) else {}

    def list_notes(self) -> List[NoteRecord]:
        """
        Scan the vault for notes, skipping hidden directories.

        Creation time comes from the ``created`` front-matter key, then the
        file's birth time, then its modification time.
        """
        notes = []
        self._alias_cache.clear()
        for path in sorted(self.vault_path.rglob(f"*{self.extension}")):
            rel = path.relative_to(self.vault_path)
            if any(part.startswith(".") for part in rel.parts) or not path.is_file():
                continue
            try:
                stat = path.stat()
            except OSError as e:
                logger.warning(f"Skipping unreadable note {rel}: {e}")
                continue

            identity = rel.as_posix()
            metadata = self._front_matter(identity)
            self._alias_cache[identity] = (stat.st_mtime_ns, self._monotonic(), metadata.get("aliases"))

            created = parse_created(metadata.get("created"))
            if created is None:
                created = self._file_created_ms(stat)
            notes.append(NoteRecord(identity=identity, title=title_from_identity(identity), created_at=created))
        logger.debug(f"Scanned {len(notes)} notes in {self.vault_path}")
        return notes

    def aliases(self, identity: str) -> Any:
        """Raw ``aliases`` front-matter field of a note, or None."""
        cached = self._alias_cache.get(identity)
        now = self._monotonic()
        if cached is not None and now - cached[1] < self.refresh_interval:
            return cached[2]

        try:
            mtime = self.path_for(identity).stat().st_mtime_ns
        except OSError:
            self._alias_cache.pop(identity, None)
            return None

        if cached is not None and cached[0] == mtime:
            self._alias_cache[identity] = (mtime, now, cached[2])
            return cached[2]

        raw = self._front_matter(identity).get("aliases")
        self._alias_cache[identity] = (mtime, now, raw)
        return raw

    def invalidate(self, identity: Optional[str] = None) -> None:
        """Forget cached front matter for one note, or for all of them."""
        if identity is None:
            self._alias_cache.clear()
        else:
            self._alias_cache.pop(identity, None)

    def _check_title(self, title: str) -> str:
        title = title.strip()
        if not title or any(c in _INVALID_TITLE_CHARS for c in title):
            raise ValueError(f"Invalid note title: {title!r}")
        return title

    async def create_note(
        self,
        title: str,
        content: str = "",
        aliases: Optional[List[str]] = None,
        folder: Optional[str] = None
    ) -> NoteRecord:
        """Write a new note and announce it."""
        title = self._check_title(title)
        directory = self.vault_path / folder if folder else self.vault_path
        note_path = directory / f"{title}{self.extension}"
        if note_path.exists():
            raise FileExistsError(f"Note already exists: {self.identity_for(note_path)}")
        note_path.parent.mkdir(parents=True, exist_ok=True)

        metadata: Dict[str, Any] = {}
        if aliases:
            metadata["aliases"] = list(aliases)
        created = now_ms()
        metadata["created"] = datetime.fromtimestamp(created / 1000, tz=timezone.utc).isoformat()
        post = frontmatter.Post(content=content, **metadata)

        async with aiofiles.open(note_path, 'w') as f:
            await f.write(frontmatter.dumps(post))

        identity = self.identity_for(note_path)
        self.invalidate(identity)
        logger.info(f"Created note: {identity}")
        if self.event_bus:
            await self.event_bus.emit(note_created(identity, created))
        return NoteRecord(identity=identity, title=title, created_at=created)

    async def rename_note(self, identity: str, new_title: str) -> str:
        """Rename a note within its folder and announce the move."""
        new_title = self._check_title(new_title)
        old_path = self.path_for(identity)
        if not old_path.is_file():
            raise FileNotFoundError(f"No such note: {identity}")
        new_path = old_path.with_name(f"{new_title}{old_path.suffix}")
        if new_path.exists():
            raise FileExistsError(f"Note already exists: {self.identity_for(new_path)}")

        os.rename(old_path, new_path)
        self.invalidate(identity)

        new_identity = self.identity_for(new_path)
        self.invalidate(new_identity)
        logger.info(f"Renamed note: {identity} -> {new_identity}")
        if self.event_bus:
            # The index carries creation time over; the file keeps its created key
            await self.event_bus.emit(note_renamed(identity, new_identity))
        return new_identity

    async def delete_note(self, identity: str) -> None:
        """Delete a note and announce it."""
        path = self.path_for(identity)
        if not path.is_file():
            raise FileNotFoundError(f"No such note: {identity}")
        path.unlink()
        self.invalidate(identity)

        logger.info(f"Deleted note: {identity}")
        if self.event_bus:
            await self.event_bus.emit(note_deleted(identity))
