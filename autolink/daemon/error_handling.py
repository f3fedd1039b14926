"""Error tracking for best-effort background work.

Nothing in the suggestion path may surface an error while the user is
typing. Failures in background work (persistence writes, event handlers)
are logged, recorded here and swallowed, so they can still be inspected
through the service status and the CLI.
"""

from typing import Optional, Dict, Any
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from collections import deque, defaultdict

from loguru import logger


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4


@dataclass
class ErrorEvent:
    """Represents an error event."""
    timestamp: datetime
    service: str
    error_type: str
    message: str
    severity: ErrorSeverity
    traceback: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            'timestamp': self.timestamp.isoformat(),
            'service': self.service,
            'error_type': self.error_type,
            'message': self.message,
            'severity': self.severity.value,
            'context': self.context
        }


def classify_severity(error: BaseException) -> ErrorSeverity:
    """Classify error severity."""
    if isinstance(error, (MemoryError, SystemError)):
        return ErrorSeverity.CRITICAL
    elif isinstance(error, (PermissionError, IsADirectoryError)):
        return ErrorSeverity.HIGH
    elif isinstance(error, OSError):
        return ErrorSeverity.MEDIUM
    else:
        return ErrorSeverity.LOW


class ErrorAggregator:
    """Aggregate errors for analysis."""

    def __init__(self, window_size: int = 100):
        """
        Args:
            window_size: Number of recent errors to keep
        """
        self.window_size = window_size
        self.errors: deque = deque(maxlen=window_size)
        self.error_counts: Dict[str, int] = defaultdict(int)
        self.service_failures: Dict[str, int] = defaultdict(int)
        self.service_successes: Dict[str, int] = defaultdict(int)

    def record_error(self, error_event: ErrorEvent) -> None:
        """Record an error event."""
        self.errors.append(error_event)
        self.error_counts[f"{error_event.service}:{error_event.error_type}"] += 1
        self.service_failures[error_event.service] += 1

        if error_event.severity == ErrorSeverity.CRITICAL:
            logger.critical(f"{error_event.service}: {error_event.message}")

    def record_success(self, service: str) -> None:
        """Record a successful operation."""
        self.service_successes[service] += 1

    def error_rate(self, service: str) -> float:
        total = self.service_failures[service] + self.service_successes[service]
        if total == 0:
            return 0.0
        return self.service_failures[service] / total

    @property
    def total_errors(self) -> int:
        return sum(self.service_failures.values())

    def get_error_summary(self) -> Dict[str, Any]:
        """Get error summary."""
        top_errors = sorted(
            self.error_counts.items(),
            key=lambda x: x[1],
            reverse=True
        )[:5]

        services = set(self.service_failures) | set(self.service_successes)
        return {
            'total_errors': self.total_errors,
            'recent': [e.to_dict() for e in list(self.errors)[-5:]],
            'top_errors': [{'error': k, 'count': v} for k, v in top_errors],
            'service_health': {
                service: {
                    'failures': self.service_failures[service],
                    'successes': self.service_successes[service],
                    'error_rate': self.error_rate(service),
                }
                for service in sorted(services)
            },
        }
