"""Sorted runs over pooled buffers for the windowed reorderer.

A run is a ``[start, stop)`` view over a backing list, so partitioning a
frozen buffer never copies elements. Backing lists are recycled through a
``BufferPool`` once every element in them has been emitted.
"""

from bisect import bisect_right
from operator import attrgetter
from typing import Iterator, List, Optional, Tuple

_sort_key = attrgetter("timestamp", "ordinal")


class SortElement:
    """A row positioned at ``(timestamp, ordinal)``."""

    __slots__ = ("timestamp", "ordinal", "row")

    def __init__(self, timestamp: int, ordinal: int, row: dict):
        self.timestamp = timestamp
        self.ordinal = ordinal
        self.row = row

    def __repr__(self) -> str:
        return f"SortElement({self.timestamp}, {self.ordinal})"


class BufferPool:
    """Recycles backing lists between reorder rounds."""

    def __init__(self) -> None:
        self._free: List[List[SortElement]] = []

    def acquire(self) -> List[SortElement]:
        if self._free:
            return self._free.pop()
        return []

    def release(self, buffer: Optional[List[SortElement]]) -> None:
        if buffer is None:
            return
        buffer.clear()
        self._free.append(buffer)

    def __len__(self) -> int:
        return len(self._free)


class SortedRun:
    """An ascending ``(timestamp, ordinal)`` view over ``items[start:stop]``."""

    __slots__ = ("items", "start", "stop")

    def __init__(self, items: List[SortElement], start: int = 0, stop: Optional[int] = None):
        self.items = items
        self.start = start
        self.stop = len(items) if stop is None else stop

    @classmethod
    def freeze(cls, buffer: List[SortElement]) -> "SortedRun":
        """Sort a buffer in place (stable) and wrap it."""
        buffer.sort(key=_sort_key)
        return cls(buffer)

    def __len__(self) -> int:
        return self.stop - self.start

    def __iter__(self) -> Iterator[SortElement]:
        items = self.items
        for i in range(self.start, self.stop):
            yield items[i]

    def partition(self, cut_timestamp: int) -> Tuple["SortedRun", "SortedRun"]:
        """Split into elements at or before ``cut_timestamp`` and those after it."""
        split = bisect_right(
            self.items, cut_timestamp, self.start, self.stop, key=attrgetter("timestamp")
        )
        return SortedRun(self.items, self.start, split), SortedRun(self.items, split, self.stop)


EMPTY_RUN = SortedRun([], 0, 0)


def merge_runs(left: SortedRun, right: SortedRun, out: List[SortElement]) -> SortedRun:
    """Stable two-pointer merge; on equal keys elements of ``left`` come first."""
    li, lstop, litems = left.start, left.stop, left.items
    ri, rstop, ritems = right.start, right.stop, right.items
    while li < lstop and ri < rstop:
        a, b = litems[li], ritems[ri]
        if (b.timestamp, b.ordinal) < (a.timestamp, a.ordinal):
            out.append(b)
            ri += 1
        else:
            out.append(a)
            li += 1
    out.extend(litems[li:lstop])
    out.extend(ritems[ri:rstop])
    return SortedRun(out)
