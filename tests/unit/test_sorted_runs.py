"""
Unit tests for sorted runs, partitioning and merging.
"""

from inflight.utils.sorted_runs import EMPTY_RUN, BufferPool, SortedRun, SortElement, merge_runs


def _elements(*keys):
    return [SortElement(ts, ordinal, {"id": f"{ts}/{ordinal}"}) for ts, ordinal in keys]


def _keys(run):
    return [(e.timestamp, e.ordinal) for e in run]


class TestSortedRun:
    """Test freezing and partitioning."""

    def test_freeze_sorts_by_timestamp_then_ordinal(self):
        """Test freeze sorts by timestamp then ordinal."""
        run = SortedRun.freeze(_elements((5, 2), (1, 9), (5, 1), (3, 3)))
        assert _keys(run) == [(1, 9), (3, 3), (5, 1), (5, 2)]

    def test_partition_includes_cut_in_write_side(self):
        """Test partition includes cut in write side."""
        run = SortedRun.freeze(_elements((1, 1), (2, 2), (2, 3), (4, 4)))
        write, hold = run.partition(2)
        assert _keys(write) == [(1, 1), (2, 2), (2, 3)]
        assert _keys(hold) == [(4, 4)]
        assert write.items is hold.items  # views, no copy

    def test_partition_extremes(self):
        """Test partition extremes."""
        run = SortedRun.freeze(_elements((3, 1), (4, 2)))
        write, hold = run.partition(0)
        assert len(write) == 0 and len(hold) == 2
        write, hold = run.partition(10)
        assert len(write) == 2 and len(hold) == 0


class TestMergeRuns:
    """Test the two-pointer merge."""

    def test_merge_interleaves(self):
        """Test merge interleaves."""
        left = SortedRun.freeze(_elements((1, 1), (4, 4), (6, 6)))
        right = SortedRun.freeze(_elements((2, 2), (5, 5), (7, 7)))
        merged = merge_runs(left, right, [])
        assert _keys(merged) == [(1, 1), (2, 2), (4, 4), (5, 5), (6, 6), (7, 7)]

    def test_merge_is_stable_for_equal_keys(self):
        """Test merge is stable for equal keys."""
        left = SortedRun([SortElement(1, 1, {"side": "left"})])
        right = SortedRun([SortElement(1, 1, {"side": "right"})])
        merged = list(merge_runs(left, right, []))
        assert [e.row["side"] for e in merged] == ["left", "right"]

    def test_merge_with_empty(self):
        """Test merge with empty."""
        run = SortedRun.freeze(_elements((1, 1), (2, 2)))
        assert _keys(merge_runs(EMPTY_RUN, run, [])) == [(1, 1), (2, 2)]
        assert _keys(merge_runs(run, EMPTY_RUN, [])) == [(1, 1), (2, 2)]


class TestBufferPool:
    """Test buffer recycling."""

    def test_released_buffers_are_reused_empty(self):
        """Test released buffers are reused empty."""
        pool = BufferPool()
        buffer = pool.acquire()
        buffer.extend(_elements((1, 1)))
        pool.release(buffer)
        assert len(pool) == 1
        again = pool.acquire()
        assert again is buffer
        assert again == []
