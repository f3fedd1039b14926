"""Persistence of settings and usage statistics.

Layout of the data file::

    {"settings": {...camelCase fields...},
     "usageStats": {identity: {"count": int, "lastUsed": epoch_ms}}}

Writes are best effort and at most once: ``schedule_save`` snapshots the
current state and hands the write to a detached task. A failed write is
logged and recorded, never raised, and a crash can lose the last pending
write.
"""

import asyncio
import json
import os
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Set, Tuple
import aiofiles
from loguru import logger

from .config import Settings
from .error_handling import ErrorAggregator, ErrorEvent, classify_severity
from .models import UsageRecord
from .usage import UsageStatsStore


class DataStore:
    """Loads and saves the persisted blob for one vault."""

    def __init__(
        self,
        data_path: Path,
        snapshot: Optional[Callable[[], Dict[str, Any]]] = None,
        errors: Optional[ErrorAggregator] = None
    ):
        self.data_path = Path(data_path)
        self._snapshot = snapshot
        self.errors = errors or ErrorAggregator()
        self._write_lock: Optional[asyncio.Lock] = None
        self._pending: Set[asyncio.Task] = set()

    def set_snapshot(self, snapshot: Callable[[], Dict[str, Any]]) -> None:
        self._snapshot = snapshot

    def load(self) -> Tuple[Settings, Dict[str, UsageRecord]]:
        """
        Read persisted settings and usage stats.

        A missing or corrupt file yields defaults. A legacy blob that keeps
        settings at the top level (no ``settings`` key) is accepted.
        """
        data = self._read()
        if "settings" in data or "usageStats" in data:
            raw_settings = data.get("settings")
        else:
            raw_settings = data
        settings = Settings.from_persisted(raw_settings or {})
        usage = UsageStatsStore.from_dict(data.get("usageStats"))
        logger.debug(f"Loaded {len(usage)} usage records from {self.data_path}")
        return settings, usage

    def _read(self) -> Dict[str, Any]:
        if not self.data_path.exists():
            return {}
        try:
            with open(self.data_path, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read {self.data_path}, using defaults: {e}")
            self._record_failure(e)
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed data file {self.data_path}")
            return {}
        return data

    def schedule_save(self) -> None:
        """
        Fire-and-forget save of the current state.

        Inside an event loop the write runs as a background task; outside
        one it runs inline. Either way failures are swallowed.
        """
        if self._snapshot is None:
            return
        try:
            payload = json.dumps(self._snapshot(), indent=2)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize data: {e}")
            self._record_failure(e)
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._write_sync(payload)
            return

        task = loop.create_task(self._write(payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def save(self) -> None:
        """Write the current state and wait for it."""
        if self._snapshot is None:
            return
        await self._write(json.dumps(self._snapshot(), indent=2))

    async def flush(self) -> None:
        """Wait for every scheduled write to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    async def _write(self, payload: str) -> None:
        if self._write_lock is None:
            self._write_lock = asyncio.Lock()
        async with self._write_lock:
            try:
                self.data_path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path = self.data_path.with_suffix(".tmp")
                async with aiofiles.open(tmp_path, 'w') as f:
                    await f.write(payload)
                os.replace(tmp_path, self.data_path)
                self.errors.record_success("persistence")
            except Exception as e:
                logger.error(f"Failed to save {self.data_path}: {e}")
                self._record_failure(e)

    def _write_sync(self, payload: str) -> None:
        try:
            self.data_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.data_path.with_suffix(".tmp")
            with open(tmp_path, 'w') as f:
                f.write(payload)
            os.replace(tmp_path, self.data_path)
            self.errors.record_success("persistence")
        except Exception as e:
            logger.error(f"Failed to save {self.data_path}: {e}")
            self._record_failure(e)

    def _record_failure(self, error: Exception) -> None:
        self.errors.record_error(ErrorEvent(
            timestamp=datetime.now(),
            service="persistence",
            error_type=type(error).__name__,
            message=str(error),
            severity=classify_severity(error),
            traceback=traceback.format_exc(),
            context={"path": str(self.data_path)}
        ))
