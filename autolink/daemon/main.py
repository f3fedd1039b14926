"""Service wiring for autolink."""

import sys
from pathlib import Path
from typing import Callable, Optional
from datetime import datetime, timezone
from loguru import logger

from .config import Config, SettingsManager
from .bus import EventBus
from .error_handling import ErrorAggregator
from .matcher import Matcher
from .models import now_ms
from .persistence import DataStore
from .scoring import ScoringEngine
from .settings_tab import SettingsTab
from .suggester import NoteTitleSuggester
from .title_index import TitleIndex
from .usage import UsageStatsStore
from .vault import Vault


LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO", log_file: Optional[Path] = None, file_level: str = "DEBUG") -> None:
    """Route loguru output to stderr and, optionally, a rotating file."""
    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level=level)

    if log_file is not None:
        log_file = Path(log_file).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            rotation="1 day",
            retention="7 days",
            level=file_level
        )


class AutoLinkService:
    """Owns every component and wires them through constructor injection."""

    def __init__(self, config: Config, clock: Callable[[], int] = now_ms):
        self.config = config
        self.start_time = datetime.now(timezone.utc)
        self.errors = ErrorAggregator()

        self.event_bus = EventBus(errors=self.errors)
        self.vault = Vault(config.vault_path, self.event_bus, config.extension)
        self.index = TitleIndex(config.extension)
        self.settings = SettingsManager()
        self.usage = UsageStatsStore(clock=clock)
        self.store = DataStore(config.data_path, snapshot=self._snapshot, errors=self.errors)

        self.scoring = ScoringEngine(self.usage, clock=clock)
        self.suggester = NoteTitleSuggester(
            self.index,
            Matcher(self.vault),
            self.scoring,
            self.usage,
            self.settings
        )
        self.settings_tab = SettingsTab(self.settings)

        self.index.subscribe(self.event_bus)
        self.usage.subscribe(self.event_bus)
        self._started = False

    def _snapshot(self) -> dict:
        return {
            "settings": self.settings.current.to_persisted(),
            "usageStats": self.usage.to_dict(),
        }

    def load(self) -> None:
        """Load persisted state and build the index from a vault scan."""
        settings, records = self.store.load()
        self.settings.replace(settings)
        self.usage.replace(records)
        self.settings.set_on_change(self.store.schedule_save)
        self.usage.set_on_change(self.store.schedule_save)
        self.index.build(self.vault.list_notes())

    async def start(self) -> None:
        """Start all services."""
        logger.info("Starting autolink service...")
        self.load()
        await self.event_bus.start()
        self._started = True
        logger.info(f"autolink ready: {len(self.index)} notes in {self.config.vault_path}")

    async def stop(self) -> None:
        """Drain pending events and writes, then stop."""
        if not self._started:
            return
        logger.info("Stopping autolink service...")
        await self.event_bus.stop()
        await self.store.flush()
        self._started = False
        logger.info("autolink service stopped")

    def get_status(self) -> dict:
        """Get service status and statistics."""
        uptime = (datetime.now(timezone.utc) - self.start_time).total_seconds()
        return {
            "status": "running" if self._started else "stopped",
            "uptime": f"{uptime:.0f}s",
            "vault_path": str(self.config.vault_path),
            "notes": len(self.index),
            "usage_records": len(self.usage),
            "bus": self.event_bus.get_stats(),
            "errors": self.errors.get_error_summary(),
        }
