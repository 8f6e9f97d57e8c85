"""Event splitter: one request row in, an ``end`` and a ``start`` event out."""

import logging
from typing import Iterable, List, Tuple

from ..records.models import DURATION, REQUEST_ID, STARTED_AT
from ..utils.timestamps import parse_started_at_millis
from .abstract_stage import AbstractStage, Row
from .models import END, SPLIT_FIELDS, START, Event, extend_header

logger = logging.getLogger(__name__)

MIN_DURATION_MS = 1


def parse_duration_millis(text: str):
    """Non-negative integer milliseconds, clamped to at least 1ms; None if invalid."""
    text = text.strip() if text else ""
    if not (text.isascii() and text.isdigit()):
        return None
    return max(int(text), MIN_DURATION_MS)


class EventSplitter(AbstractStage):
    """Turns each request into its two interval events.

    The ``end`` event is emitted before the ``start`` event; the reorderer
    downstream restores chronological order. Both carry the ordinal of the
    input row, which is counted here and nowhere else.
    """

    def __init__(self, stage_id: str = "split"):
        super().__init__(stage_id)
        self.ordinal = 0
        self.rows_dropped = 0

    def output_header(self, header: Tuple[str, ...]) -> Tuple[str, ...]:
        return extend_header(header, SPLIT_FIELDS)

    def split(self, row: Row) -> List[Event]:
        self.ordinal += 1

        start = parse_started_at_millis(row.get(STARTED_AT, ""))
        duration = parse_duration_millis(row.get(DURATION, ""))
        if start is None or duration is None:
            self.rows_dropped += 1
            logger.debug(f"Dropping row {self.ordinal}: unparseable start time or duration")
            return []

        request_id = row.get(REQUEST_ID, "")
        end_event = Event(self.ordinal, start + duration, END, request_id)
        start_event = Event(self.ordinal, start, START, request_id, payload=row)
        return [end_event, start_event]

    def process_row(self, row: Row) -> Iterable[Row]:
        return [event.to_row() for event in self.split(row)]
