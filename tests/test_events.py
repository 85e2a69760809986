"""Unit tests for tracking events.

Tests cover:
- TrackingEvent serialization
- Fan-out to every registered sink
- Error isolation for failing sinks
- The logging sink
"""

import json
import logging
from datetime import datetime, timezone

from leadcapture.events import LoggingTrackingSink, TrackingEmitter, TrackingEvent
from leadcapture.types import TrackingEventName
from tests.fakes import RecordingSink


class TestTrackingEvent:
    """Test TrackingEvent serialization."""

    def test_to_dict(self):
        event = TrackingEvent(
            event_id="trk_001",
            name=TrackingEventName.STEP_COMPLETED,
            form_id="default-form",
            ts=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
            payload={"step": 1, "step_title": "Vos informations"},
        )
        data = event.to_dict()
        assert data == {
            "eventId": "trk_001",
            "name": "step_completed",
            "formId": "default-form",
            "ts": "2024-01-01T12:00:00+00:00",
            "payload": {"step": 1, "step_title": "Vos informations"},
        }
        assert TrackingEvent.from_dict(data) == event

    def test_name_coerced_from_string(self):
        event = TrackingEvent(
            event_id="trk_002",
            name="form_started",
            form_id="default-form",
            ts=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        assert event.name is TrackingEventName.FORM_STARTED

    def test_to_jsonl_is_single_line(self):
        event = TrackingEvent(
            event_id="trk_003",
            name=TrackingEventName.FORM_SUBMITTED,
            form_id="default-form",
            ts=datetime(2024, 1, 1, tzinfo=timezone.utc),
            payload={"utm": {"utm_source": "facebook"}, "prenom": "Léa"},
        )
        line = event.to_jsonl()
        assert "\n" not in line
        assert "Léa" in line
        assert json.loads(line)["payload"]["utm"] == {"utm_source": "facebook"}


class TestTrackingEmitter:
    """Test fan-out and error isolation."""

    def test_emit_reaches_every_sink(self):
        first, second = RecordingSink(), RecordingSink()
        emitter = TrackingEmitter([first, second])
        event = emitter.emit(TrackingEventName.FORM_STARTED, "default-form", {"page_slug": "devis"})

        assert first.events == [event]
        assert second.events == [event]
        assert event.event_id.startswith("trk_")
        assert event.payload == {"page_slug": "devis"}
        assert event.ts.tzinfo is not None

    def test_failing_sink_is_isolated(self, caplog):
        """Should log a failing sink and keep dispatching."""
        def broken(event):
            raise ConnectionError("collector down")

        recorder = RecordingSink()
        emitter = TrackingEmitter([broken, recorder])
        with caplog.at_level(logging.ERROR, logger="leadcapture.events"):
            emitter.emit(TrackingEventName.STEP_COMPLETED, "default-form")

        assert recorder.names() == ["step_completed"]
        assert "Tracking sink failed for event step_completed" in caplog.text

    def test_add_and_remove_sinks(self):
        recorder = RecordingSink()
        emitter = TrackingEmitter()
        assert emitter.sink_count() == 0

        emitter.add_sink(recorder)
        assert emitter.sink_count() == 1
        emitter.remove_sink(recorder)
        emitter.remove_sink(recorder)
        assert emitter.sink_count() == 0

        emitter.emit(TrackingEventName.FORM_STARTED, "default-form")
        assert recorder.events == []

    def test_payload_is_copied(self):
        payload = {"step": 1}
        recorder = RecordingSink()
        TrackingEmitter([recorder]).emit(TrackingEventName.STEP_COMPLETED, "default-form", payload)
        payload["step"] = 2
        assert recorder.events[0].payload == {"step": 1}


class TestLoggingTrackingSink:
    """Test the fallback sink."""

    def test_logs_one_json_line(self, caplog):
        emitter = TrackingEmitter([LoggingTrackingSink()])
        with caplog.at_level(logging.INFO, logger="leadcapture.events"):
            emitter.emit(TrackingEventName.CONSENT_GRANTED, "default-form", {"purposes": ["contractual"]})

        assert len(caplog.records) == 1
        message = caplog.records[0].getMessage()
        assert message.startswith("Track event: ")
        assert json.loads(message[len("Track event: "):])["name"] == "consent_granted"
