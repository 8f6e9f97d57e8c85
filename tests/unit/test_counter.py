"""
Unit tests for the active-interval counter.
"""

import numpy as np
from inflight.stages import ActiveIntervalCounter
from inflight.stages.models import END, START, Event


def interval_events(requests):
    """Start and end events for ``(request_id, start, duration)`` tuples, in stream order."""
    events = []
    for ordinal, (request_id, start, duration) in enumerate(requests, 1):
        events.append(Event(ordinal, start, START, request_id))
        events.append(Event(ordinal, start + duration, END, request_id))
    events.sort(key=lambda e: (e.timestamp_millis, e.ordinal))
    return events


class TestActiveIntervalCounter:
    """Test annotation of events with active count and oldest request."""

    def test_three_request_scenario(self):
        """A long request overlapping a short one, then an isolated request."""
        events = interval_events([("A", 0, 5000), ("B", 2000, 2000), ("C", 10000, 1000)])
        counter = ActiveIntervalCounter()
        annotated = [(e.request_id, e.kind, counter.annotate(e)) for e in events]

        observed = [(rid, kind, row["active"], row["oldest"]) for rid, kind, row in annotated]
        assert observed == [
            ("A", START, "0", ""),
            ("B", START, "1", "A"),
            ("B", END, "1", "A"),
            ("A", END, "0", "A"),
            ("C", START, "0", ""),
            ("C", END, "0", "C"),
        ]
        assert counter.peak_active == 2
        assert counter.pairing_misses == 0

    def test_matches_brute_force(self):
        """Counts and oldest agree with a quadratic scan over random intervals."""
        rng = np.random.default_rng(11)
        starts = rng.integers(0, 5000, size=300)
        durations = rng.integers(1, 800, size=300)
        requests = [(f"r{i}", int(s), int(d)) for i, (s, d) in enumerate(zip(starts, durations))]
        events = interval_events(requests)

        position = {(e.request_id, e.kind): p for p, e in enumerate(events)}
        counter = ActiveIntervalCounter()
        for p, event in enumerate(events):
            row = counter.annotate(event)
            overlapping = [
                rid for rid, _, _ in requests
                if position[(rid, START)] < p < position[(rid, END)]
            ]
            assert int(row["active"]) == len(overlapping)

            # the oldest is read before the event is applied
            open_before = [
                rid for rid, _, _ in requests
                if position[(rid, START)] < p <= position[(rid, END)]
            ]
            expected = min(open_before, key=lambda rid: position[(rid, START)]) if open_before else ""
            assert row["oldest"] == expected

        assert len(counter.active_set) == 0

    def test_unmatched_end_counts_pairing_miss(self):
        """Test that an end without a start is tolerated and counted."""
        counter = ActiveIntervalCounter()
        counter.annotate(Event(1, 0, START, "A"))
        row = counter.annotate(Event(2, 5, END, "ghost"))
        assert row["active"] == "1"
        assert row["oldest"] == "A"
        assert counter.pairing_misses == 1
        assert counter.get_status()["open_intervals"] == 1

    def test_duplicate_request_ids(self):
        """Two live requests sharing an id are closed one at a time."""
        counter = ActiveIntervalCounter()
        counter.annotate(Event(1, 0, START, "dup"))
        row = counter.annotate(Event(2, 1, START, "dup"))
        assert row["active"] == "1"
        assert counter.annotate(Event(1, 10, END, "dup"))["active"] == "1"
        assert counter.annotate(Event(2, 11, END, "dup"))["active"] == "0"
        assert counter.pairing_misses == 0

    def test_process_row_keeps_payload(self):
        """Test that annotation copies the payload without mutating it."""
        counter = ActiveIntervalCounter()
        row = {"ordinal": "1", "unix": "100", "eventType": "start", "requestId": "A", "method": "GET"}
        (out,) = counter.process_row(row)
        assert out["method"] == "GET"
        assert out["active"] == "0"
        assert out["oldest"] == ""
        assert "active" not in row
