"""Tests for the telemetry recorder."""

import logging

from src.refinement.telemetry import (
    CACHE_HIT,
    REFINEMENT_COMPLETE,
    REFINEMENT_DEDUPLICATED,
    TelemetryRecorder,
    sanitize,
)


class TestTelemetryRecorder:
    """Tests for TelemetryRecorder."""

    def test_counters(self):
        recorder = TelemetryRecorder()
        recorder.record_event(REFINEMENT_COMPLETE, {"duration": 120})
        recorder.record_event(CACHE_HIT)
        recorder.record_event(CACHE_HIT)
        recorder.record_event(REFINEMENT_DEDUPLICATED)

        stats = recorder.get_stats()
        assert stats["api_calls"] == 1
        assert stats["cache_hits"] == 2
        assert stats["cache_misses"] == 1
        assert stats["hit_rate"] == "67%"
        assert stats["refinements"] == 1
        assert stats["deduplicated"] == 1

    def test_bounded_buffer(self):
        recorder = TelemetryRecorder(max_events=3)
        for i in range(5):
            recorder.record_event("custom", {"i": i})

        assert [e.data["i"] for e in recorder.events] == [2, 3, 4]

    def test_logs_events(self, caplog):
        recorder = TelemetryRecorder()
        with caplog.at_level(logging.INFO, logger="src.refinement.telemetry"):
            recorder.record_event(REFINEMENT_COMPLETE, {"input_length": 13})

        assert "refinement_complete input_length=13" in caplog.text

    def test_reset(self):
        recorder = TelemetryRecorder()
        recorder.record_event(CACHE_HIT)
        recorder.reset()
        assert recorder.events == []
        assert recorder.get_stats()["hit_rate"] == "0%"


class TestSanitize:
    def test_masks_credentials(self):
        data = sanitize({"apiKey": "abc", "token_count": 5, "model": "m"})
        assert data["apiKey"] == "[REDACTED]"
        assert data["token_count"] == "[REDACTED]"
        assert data["model"] == "m"
