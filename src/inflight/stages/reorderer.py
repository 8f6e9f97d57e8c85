"""Windowed reorderer: sorts a stream whose disorder is bounded by a time window."""

import logging
from typing import Callable, Iterable, List, Optional, Tuple

from ..records.models import STARTED_AT
from ..utils.sorted_runs import EMPTY_RUN, BufferPool, SortedRun, SortElement, merge_runs
from ..utils.timestamps import parse_started_at_millis
from .abstract_stage import AbstractStage, Row
from .models import ORDINAL, UNIX

logger = logging.getLogger(__name__)

# (row, arrival index) -> (timestamp, ordinal), or None to drop the row
KeyFunction = Callable[[Row, int], Optional[Tuple[int, int]]]


def event_key(row: Row, arrival: int) -> Optional[Tuple[int, int]]:
    """Order split events by ``unix`` then ``ordinal``."""
    try:
        return int(row[UNIX]), int(row[ORDINAL])
    except (KeyError, ValueError):
        return None


def started_at_key(row: Row, arrival: int) -> Optional[Tuple[int, int]]:
    """Order request rows by ``startedAt`` then arrival."""
    timestamp = parse_started_at_millis(row.get(STARTED_AT, ""))
    if timestamp is None:
        return None
    return timestamp, arrival


class WindowedReorderer(AbstractStage):
    """Emits events in ``(timestamp, ordinal)`` order using bounded memory.

    Incoming events accumulate in an unsorted buffer. Once an event lies past
    the snapshot boundary the buffer is frozen and sorted, everything at or
    before ``timestamp - window`` is merged with the run held back last time
    and emitted, and the remainder is held for the next round. The boundary
    then moves one window past the triggering event, so held events always
    precede the next cut point.

    Provided every event arrives less than ``window`` behind the latest one
    seen, the output equals a full stable sort of the stream. The bound is
    strict: the cut is inclusive, so an event lagging by exactly ``window``
    can follow an already emitted event with the same timestamp.
    """

    def __init__(self, window_ms: int, key: KeyFunction = event_key, stage_id: str = "reorder"):
        super().__init__(stage_id)
        if window_ms <= 0:
            raise ValueError(f"window must be positive, got {window_ms}")
        self.window_ms = window_ms
        self.key = key
        self.pool = BufferPool()
        self.buffer: List[SortElement] = self.pool.acquire()
        self.held: SortedRun = EMPTY_RUN
        self.snapshot: Optional[int] = None
        self.seen = 0
        self.arrivals = 0
        self.rows_dropped = 0
        self.flushes = 0

    def output_header(self, header: Tuple[str, ...]) -> Tuple[str, ...]:
        return header

    def add(self, row: Row) -> List[Row]:
        """Accept one row; returns whatever became safe to emit."""
        self.arrivals += 1
        key = self.key(row, self.arrivals)
        if key is None:
            self.rows_dropped += 1
            return []
        timestamp, ordinal = key

        self.seen += 1
        if self.seen == 2:
            self.snapshot = timestamp + self.window_ms

        self.buffer.append(SortElement(timestamp, ordinal, row))
        if self.snapshot is not None and timestamp > self.snapshot:
            self.snapshot = timestamp + self.window_ms
            return self._flush(timestamp - self.window_ms)
        return []

    def drain(self) -> List[Row]:
        """Emit everything still buffered or held."""
        frozen = SortedRun.freeze(self.buffer)
        rows = self._emit_merged(self.held, frozen)
        self.pool.release(self.held.items if self.held is not EMPTY_RUN else None)
        self.pool.release(frozen.items)
        self.held = EMPTY_RUN
        self.buffer = self.pool.acquire()
        return rows

    def _flush(self, cut: int) -> List[Row]:
        frozen = SortedRun.freeze(self.buffer)
        write, hold = frozen.partition(cut)
        rows = self._emit_merged(self.held, write)
        # the previous backing list is now fully emitted
        if self.held is not EMPTY_RUN:
            self.pool.release(self.held.items)
        self.held = hold
        self.buffer = self.pool.acquire()
        self.flushes += 1
        logger.debug(
            f"{self.stage_id}: flush {self.flushes} at cut {cut}, "
            f"emitted {len(rows)}, holding {len(hold)}"
        )
        return rows

    def _emit_merged(self, held: SortedRun, write: SortedRun) -> List[Row]:
        out = self.pool.acquire()
        merged = merge_runs(held, write, out)
        rows = [element.row for element in merged]
        self.pool.release(out)
        return rows

    def process_row(self, row: Row) -> Iterable[Row]:
        return self.add(row)

    def finish(self) -> Iterable[Row]:
        return self.drain()
