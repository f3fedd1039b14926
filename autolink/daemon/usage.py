"""Per-note selection statistics used for usage-based ranking."""

import math
from typing import Any, Callable, Dict, Optional

from loguru import logger

from .bus import Event, EventBus, NOTE_RENAMED, NOTE_DELETED
from .models import UsageRecord, now_ms


def _is_number(value: Any) -> bool:
    """Finite int or float; JSON allows NaN, Infinity and overflowing literals."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return isinstance(value, int) or math.isfinite(value)


class UsageStatsStore:
    """
    Mapping from note identity to its usage record.

    Every mutation calls ``on_change`` so the owner can schedule a
    persistence write. The callback must not raise or block; the store does
    not wait for the write.
    """

    def __init__(
        self,
        records: Optional[Dict[str, UsageRecord]] = None,
        on_change: Optional[Callable[[], None]] = None,
        clock: Callable[[], int] = now_ms
    ):
        self._records: Dict[str, UsageRecord] = dict(records or {})
        self._on_change = on_change
        self._clock = clock

    def set_on_change(self, callback: Optional[Callable[[], None]]) -> None:
        self._on_change = callback

    def replace(self, records: Dict[str, UsageRecord]) -> None:
        """Swap in records loaded from storage without triggering a save."""
        self._records = dict(records)

    def _changed(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change()
        except Exception as e:
            logger.error(f"Failed to schedule usage stats save: {e}")

    def get(self, identity: str) -> Optional[UsageRecord]:
        return self._records.get(identity)

    def record_selection(self, identity: str) -> UsageRecord:
        """Count one more selection of ``identity`` and stamp it with now."""
        record = self._records.get(identity)
        if record is None:
            record = UsageRecord(count=0, last_used=None)
            self._records[identity] = record

        record.count += 1
        record.last_used = self._clock()
        logger.debug(f"Recorded selection of {identity} (count={record.count})")
        self._changed()
        return record

    def rekey(self, old_identity: str, new_identity: str) -> bool:
        record = self._records.pop(old_identity, None)
        if record is None:
            return False
        self._records[new_identity] = record
        self._changed()
        return True

    def remove(self, identity: str) -> bool:
        if self._records.pop(identity, None) is None:
            return False
        self._changed()
        return True

    def items(self):
        return self._records.items()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, identity: object) -> bool:
        return identity in self._records

    # ------------------------------------------------------------------
    # Persisted layout: {identity: {"count": int, "lastUsed": int}}
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {
            identity: {"count": record.count, "lastUsed": record.last_used}
            for identity, record in self._records.items()
        }

    @staticmethod
    def from_dict(data: Any) -> Dict[str, UsageRecord]:
        """Parse persisted stats. Malformed values read as absent or zero."""
        records: Dict[str, UsageRecord] = {}
        if not isinstance(data, dict):
            if data is not None:
                logger.warning("Ignoring malformed usage stats")
            return records

        for identity, raw in data.items():
            if not isinstance(identity, str) or not isinstance(raw, dict):
                logger.warning(f"Ignoring malformed usage record for {identity!r}")
                continue
            count = raw.get("count")
            if not _is_number(count) or count < 0:
                count = 0
            last_used = raw.get("lastUsed")
            if not _is_number(last_used) or last_used <= 0:
                last_used = None
            records[identity] = UsageRecord(
                count=int(count),
                last_used=int(last_used) if last_used is not None else None,
            )
        return records

    # ------------------------------------------------------------------
    # Event channel
    # ------------------------------------------------------------------

    def subscribe(self, bus: EventBus) -> None:
        bus.subscribe(NOTE_RENAMED, self.handle_event)
        bus.subscribe(NOTE_DELETED, self.handle_event)

    def handle_event(self, event: Event) -> None:
        data = event.data
        if event.type == NOTE_RENAMED:
            if self.rekey(data["old_identity"], data["identity"]):
                logger.debug(f"Moved usage stats: {data['old_identity']} -> {data['identity']}")
        elif event.type == NOTE_DELETED:
            if self.remove(data["identity"]):
                logger.debug(f"Pruned usage stats for {data['identity']}")
