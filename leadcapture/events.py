"""Tracking events for the lead-capture wizard.

The wizard reports its progress to an external analytics collector as
fire-and-forget ``TrackingEvent`` records: ``form_started``,
``step_completed``, ``form_submitted`` and ``consent_granted``.

Collectors are plugged in as ``TrackingSink`` objects. ``TrackingEmitter``
fans every event out to its sinks and isolates failures: a sink that raises
is logged and skipped, and the user-facing flow is never interrupted.
"""

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from .types import TrackingEventName

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrackingEvent:
    """A single analytics event emitted by the wizard.

    Attributes:
        event_id: Unique event identifier (e.g., "trk_1f0c...")
        name: Event name from TrackingEventName
        form_id: Form definition the event relates to
        ts: UTC timestamp when the event was emitted
        payload: Event-specific data (step number, field snapshot, attribution...)

    Examples:
        >>> event = TrackingEvent(
        ...     event_id="trk_001",
        ...     name=TrackingEventName.FORM_STARTED,
        ...     form_id="default-form",
        ...     ts=datetime(2024, 1, 1, tzinfo=timezone.utc),
        ... )
        >>> event.to_dict()["name"]
        'form_started'
    """
    event_id: str
    name: TrackingEventName
    form_id: str
    ts: datetime
    payload: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if isinstance(self.name, str) and not isinstance(self.name, TrackingEventName):
            object.__setattr__(self, "name", TrackingEventName(self.name))

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization.

        Timestamp is formatted as ISO 8601 string.
        """
        return {
            "eventId": self.event_id,
            "name": self.name.value,
            "formId": self.form_id,
            "ts": self.ts.isoformat(),
            "payload": self.payload,
        }

    def to_jsonl(self) -> str:
        """Single-line JSON, for appending to a JSONL stream."""
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False, default=str)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrackingEvent":
        """Create TrackingEvent from dictionary (camelCase keys)."""
        ts = datetime.fromisoformat(data["ts"].replace("Z", "+00:00"))
        return cls(
            event_id=data["eventId"],
            name=TrackingEventName(data["name"]),
            form_id=data["formId"],
            ts=ts,
            payload=data.get("payload") or {},
        )


TrackingSink = Callable[[TrackingEvent], None]
"""A collector receiving tracking events.

Sinks are called synchronously. They may raise; the emitter logs and
swallows the error.
"""


class LoggingTrackingSink:
    """Sink writing each event as one JSON line to a logger.

    Used when no analytics collector is configured.
    """

    def __init__(self, log: Optional[logging.Logger] = None, level: int = logging.INFO):
        self._log = log or logger
        self._level = level

    def __call__(self, event: TrackingEvent) -> None:
        self._log.log(self._level, f"Track event: {event.to_jsonl()}")


class TrackingEmitter:
    """Fans tracking events out to registered sinks.

    Features:
    - Any number of sinks, called in registration order
    - Error isolation (a failing sink is logged, the others still run)
    - Never raises to the caller

    Examples:
        >>> received = []
        >>> emitter = TrackingEmitter([received.append])
        >>> event = emitter.emit(TrackingEventName.FORM_STARTED, "default-form", {"page_slug": "devis"})
        >>> received[0].payload
        {'page_slug': 'devis'}
    """

    def __init__(self, sinks: Optional[List[TrackingSink]] = None):
        self._sinks: List[TrackingSink] = list(sinks or [])

    def add_sink(self, sink: TrackingSink) -> None:
        self._sinks.append(sink)

    def remove_sink(self, sink: TrackingSink) -> None:
        try:
            self._sinks.remove(sink)
        except ValueError:
            pass  # Sink not registered, ignore

    def sink_count(self) -> int:
        return len(self._sinks)

    def emit(
        self,
        name: Union[TrackingEventName, str],
        form_id: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> TrackingEvent:
        """Build an event and dispatch it to every sink.

        Args:
            name: Event name
            form_id: Form definition identifier
            payload: Event-specific data

        Returns:
            The emitted event
        """
        event = TrackingEvent(
            event_id=f"trk_{uuid.uuid4().hex[:16]}",
            name=TrackingEventName(name),
            form_id=form_id,
            ts=datetime.now(timezone.utc),
            payload=dict(payload or {}),
        )
        for sink in self._sinks:
            try:
                sink(event)
            except Exception:
                logger.exception(f"Tracking sink failed for event {event.name.value}")
        return event


__all__ = [
    "TrackingEvent",
    "TrackingSink",
    "LoggingTrackingSink",
    "TrackingEmitter",
]
