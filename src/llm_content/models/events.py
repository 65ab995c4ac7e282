"""Event types for batch conversion runs."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional


class EventType(str, Enum):
    """Types of events emitted while converting items."""

    # Lifecycle events
    STARTED = "started"
    COMPLETED = "completed"

    # Per-item events
    ITEM_CONVERTED = "item_converted"
    ITEM_FAILED = "item_failed"
    ITEM_SKIPPED = "item_skipped"

    # Progress
    BATCH_PROGRESS = "batch_progress"


@dataclass
class ConversionEvent:
    """
    Event emitted during a batch conversion.

    Example:
        def on_event(event: ConversionEvent) -> None:
            if event.type == EventType.ITEM_FAILED:
                print(f"Error: {event.item_id} - {event.error}")

        processor.run(emit=on_event)
    """

    type: EventType

    # Timestamp (always UTC)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    item_id: Optional[int] = None
    langcode: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None

    # Progress tracking
    current: Optional[int] = None
    total: Optional[int] = None

    @property
    def progress_percent(self) -> Optional[float]:
        """Calculate progress percentage if current and total are set."""
        if self.current is not None and self.total and self.total > 0:
            return (self.current / self.total) * 100
        return None

    @property
    def is_error(self) -> bool:
        return self.type == EventType.ITEM_FAILED


# Type alias for event emitter function
EventEmitter = Callable[[ConversionEvent], None]


@dataclass
class BatchStats:
    """Cumulative statistics for a batch conversion run."""

    total: int = 0
    processed: int = 0
    failed: int = 0
    skipped: int = 0
    duration_seconds: float = 0.0

    @property
    def done(self) -> int:
        return self.processed + self.failed + self.skipped

    @property
    def success_rate(self) -> float:
        """Calculate success rate as a percentage."""
        attempted = self.processed + self.failed
        if attempted == 0:
            return 0.0
        return (self.processed / attempted) * 100

    def to_dict(self) -> dict:
        """Convert stats to dictionary for serialization."""
        return {
            "total": self.total,
            "processed": self.processed,
            "failed": self.failed,
            "skipped": self.skipped,
            "duration_seconds": round(self.duration_seconds, 2),
            "success_rate": round(self.success_rate, 1),
        }
