"""Async event bus carrying corpus-change notifications."""

import asyncio
from typing import Dict, List, Callable, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone
from collections import defaultdict
from loguru import logger

from .error_handling import ErrorAggregator, ErrorEvent, classify_severity


NOTE_CREATED = "vault.created"
NOTE_RENAMED = "vault.renamed"
NOTE_DELETED = "vault.deleted"


@dataclass
class Event:
    """Base event class."""
    type: str
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    source: Optional[str] = None


def note_created(identity: str, created_at: Optional[int] = None) -> Event:
    return Event(type=NOTE_CREATED, data={"identity": identity, "created_at": created_at}, source="vault")


def note_renamed(old_identity: str, identity: str, created_at: Optional[int] = None) -> Event:
    return Event(
        type=NOTE_RENAMED,
        data={"old_identity": old_identity, "identity": identity, "created_at": created_at},
        source="vault"
    )


def note_deleted(identity: str) -> Event:
    return Event(type=NOTE_DELETED, data={"identity": identity}, source="vault")


class EventBus:
    """
    Async pub/sub channel for in-process communication.

    Event types follow pattern: category.action
    Examples: vault.created, vault.renamed, vault.deleted

    Events are delivered strictly in the order they were emitted, and the
    handlers of one event run one after another, never concurrently.
    Synchronous handlers run inline on the event loop, so a handler that
    mutates the title index is never interleaved with a ranking pass.
    """

    def __init__(self, maxsize: int = 1000, errors: Optional[ErrorAggregator] = None):
        self._subscribers: Dict[str, List[Callable[[Event], Any]]] = defaultdict(list)
        self._event_queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._running = False
        self._processor_task: Optional[asyncio.Task] = None
        self._stats = defaultdict(int)
        self.errors = errors or ErrorAggregator()

    def subscribe(self, event_pattern: str, handler: Callable[[Event], Any]) -> None:
        """
        Subscribe to events matching pattern.
        Pattern can use wildcards: 'vault.*' matches all vault events.
        """
        self._subscribers[event_pattern].append(handler)
        logger.debug(f"Subscribed handler to pattern: {event_pattern}")

    def unsubscribe(self, event_pattern: str, handler: Callable[[Event], Any]) -> None:
        """Unsubscribe handler from event pattern."""
        self._subscribers[event_pattern] = [
            h for h in self._subscribers[event_pattern] if h != handler
        ]

    async def emit(self, event: Event) -> None:
        """Emit an event to the bus, waiting for room when the queue is full."""
        if self._event_queue.full():
            logger.debug(f"Event queue full, waiting to emit: {event.type}")
        await self._event_queue.put(event)
        self._stats['emitted'] += 1
        logger.debug(f"Emitted event: {event.type}")

    def emit_nowait(self, event: Event) -> bool:
        """
        Emit an event without waiting (non-async).
        Returns True if successful, False if queue is full.
        """
        try:
            self._event_queue.put_nowait(event)
            self._stats['emitted'] += 1
            logger.debug(f"Emitted event (nowait): {event.type}")
            return True
        except asyncio.QueueFull:
            logger.warning(f"Event queue full, dropping event: {event.type}")
            self._stats['dropped'] += 1
            return False

    async def start(self) -> None:
        """Start the event processor."""
        if self._running:
            logger.warning("Event bus already running")
            return

        self._running = True
        self._processor_task = asyncio.create_task(self._process_events())
        logger.info("Event bus started")

    async def stop(self) -> None:
        """Stop the event processor after draining queued events."""
        if not self._running:
            return
        await self.join()
        self._running = False
        if self._processor_task:
            await self._processor_task
            self._processor_task = None
        logger.info("Event bus stopped")

    async def join(self) -> None:
        """Wait until every emitted event has been processed."""
        await self._event_queue.join()

    async def _process_events(self) -> None:
        """Process events from the queue."""
        while self._running:
            try:
                # Wait for event with timeout to allow checking _running flag
                event = await asyncio.wait_for(
                    self._event_queue.get(),
                    timeout=0.1
                )
            except asyncio.TimeoutError:
                # Normal timeout, continue loop
                continue

            try:
                await self.dispatch(event)
                self._stats['processed'] += 1
            finally:
                self._event_queue.task_done()

    async def dispatch(self, event: Event) -> None:
        """Deliver one event to every matching handler, in order."""
        for handler in self._handlers_for(event.type):
            try:
                result = handler(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"Handler error for event {event.type}: {e}")
                self._stats['handler_errors'] += 1
                self.errors.record_error(ErrorEvent(
                    timestamp=datetime.now(),
                    service="bus",
                    error_type=type(e).__name__,
                    message=str(e),
                    severity=classify_severity(e),
                    context={"event": event.type}
                ))

    def _handlers_for(self, event_type: str) -> List[Callable[[Event], Any]]:
        handlers = []
        for pattern, subscribed in list(self._subscribers.items()):
            if self._matches_pattern(event_type, pattern):
                handlers.extend(subscribed)
        return handlers

    def _matches_pattern(self, event_type: str, pattern: str) -> bool:
        """Check if event type matches subscription pattern."""
        if pattern == "*":
            return True
        if pattern.endswith(".*"):
            prefix = pattern[:-2]
            return event_type.startswith(prefix + ".")
        return event_type == pattern

    def get_stats(self) -> Dict[str, int]:
        """Get event bus statistics."""
        return dict(self._stats)

    def reset_stats(self) -> None:
        """Reset statistics."""
        self._stats.clear()
