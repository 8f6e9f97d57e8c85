"""Active-interval counter: annotates events with the number of requests in flight."""

import logging
from typing import Iterable, Tuple

from ..utils.indexed_heap import IndexedMinHeap
from .abstract_stage import AbstractStage, Row
from .models import ACTIVE, COUNT_FIELDS, END, OLDEST, START, Event, extend_header

logger = logging.getLogger(__name__)


class ActiveIntervalCounter(AbstractStage):
    """Tracks open intervals over a timestamp-ordered event stream.

    Each row gets ``active``, the number of other requests in flight at that
    instant, and ``oldest``, the longest-running open request as seen before
    the row is applied. On a ``start`` row the request itself is not yet
    counted; on an ``end`` row it has already been removed.
    """

    def __init__(self, stage_id: str = "count"):
        super().__init__(stage_id)
        self.active_set = IndexedMinHeap()
        self.pairing_misses = 0
        self.peak_active = 0

    def output_header(self, header: Tuple[str, ...]) -> Tuple[str, ...]:
        return extend_header(header, COUNT_FIELDS)

    def annotate(self, event: Event) -> Row:
        oldest = self.active_set.peek_oldest() or ""

        if event.kind == START:
            active = len(self.active_set)
            self.active_set.insert(event.request_id, event.timestamp_millis)
            self.peak_active = max(self.peak_active, len(self.active_set))
        elif event.kind == END:
            if not self.active_set.remove_by_id(event.request_id):
                self.pairing_misses += 1
                logger.debug(f"No open interval for end of request {event.request_id!r}")
            active = len(self.active_set)
        else:
            active = len(self.active_set)

        row = dict(event.payload)
        row[ACTIVE] = str(active)
        row[OLDEST] = oldest
        return row

    def process_row(self, row: Row) -> Iterable[Row]:
        return (self.annotate(Event.from_row(row)),)

    def get_status(self):
        status = super().get_status()
        status["open_intervals"] = len(self.active_set)
        status["pairing_misses"] = self.pairing_misses
        status["peak_active"] = self.peak_active
        return status
