"""
Unit tests for the event splitter.
"""

from inflight.stages import EventSplitter
from inflight.stages.models import END, START, Event


def request_row(request_id, started_at, duration, **extra):
    row = {"startedAt": started_at, "duration": str(duration), "requestId": request_id}
    row.update(extra)
    return row


class TestEventSplitter:
    """Test splitting request rows into start and end events."""

    def test_end_then_start_with_shared_ordinal(self):
        """Test that each request yields an end and a start sharing an ordinal."""
        splitter = EventSplitter()
        end_row, start_row = splitter.process_row(
            request_row("A", "2016-01-01 00:00:00.250", 5000, method="GET")
        )
        assert end_row["eventType"] == END
        assert start_row["eventType"] == START
        assert end_row["ordinal"] == start_row["ordinal"] == "1"
        assert int(end_row["unix"]) - int(start_row["unix"]) == 5000
        assert start_row["unix"] == "1451606400250"

    def test_end_event_carries_only_pairing_fields(self):
        """Test that the end event carries only what pairing needs."""
        splitter = EventSplitter()
        end_row, start_row = splitter.process_row(request_row("A", "2016-01-01 00:00:00", 10, method="GET"))
        assert end_row["requestId"] == "A"
        assert "method" not in end_row
        assert start_row["method"] == "GET"

    def test_ordinal_counts_every_input_row(self):
        """Test that dropped rows still advance the ordinal."""
        splitter = EventSplitter()
        splitter.process_row(request_row("A", "2016-01-01 00:00:00", 10))
        assert list(splitter.process_row(request_row("B", "not a time", 10))) == []
        rows = splitter.process_row(request_row("C", "2016-01-01 00:00:01", 10))
        assert {row["ordinal"] for row in rows} == {"3"}
        assert splitter.rows_dropped == 1

    def test_unparseable_duration_dropped(self):
        """Test that non-numeric and negative durations are dropped."""
        splitter = EventSplitter()
        assert list(splitter.process_row(request_row("A", "2016-01-01 00:00:00", "fast"))) == []
        assert list(splitter.process_row(request_row("B", "2016-01-01 00:00:00", "-5"))) == []
        assert splitter.rows_dropped == 2

    def test_zero_duration_clamped(self):
        """Test that a zero duration becomes one millisecond."""
        splitter = EventSplitter()
        end_event, start_event = splitter.split(request_row("A", "2016-01-01 00:00:00", 0))
        assert end_event.timestamp_millis - start_event.timestamp_millis == 1

    def test_events_parse_back(self):
        """Test that emitted rows parse back into events."""
        splitter = EventSplitter()
        for row in splitter.process_row(request_row("A", "2016-01-01 00:00:00", 7)):
            event = Event.from_row(row)
            assert event.request_id == "A"
            assert event.ordinal == 1

    def test_output_header(self):
        """Test the split columns appended to the header."""
        header = EventSplitter().output_header(("startedAt", "duration", "requestId"))
        assert header == ("startedAt", "duration", "requestId", "ordinal", "unix", "eventType")
