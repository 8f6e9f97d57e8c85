"""End-event filter."""

from typing import Iterable, Tuple

from .abstract_stage import AbstractStage, Row
from .models import COUNT_FIELDS, END, EVENT_TYPE, SPLIT_FIELDS, extend_header


class EndEventFilter(AbstractStage):
    """Drops ``end`` rows, leaving one annotated row per request."""

    def __init__(self, stage_id: str = "filter"):
        super().__init__(stage_id)

    def output_header(self, header: Tuple[str, ...]) -> Tuple[str, ...]:
        kept = tuple(name for name in header if name not in SPLIT_FIELDS)
        return extend_header(kept, COUNT_FIELDS)

    def process_row(self, row: Row) -> Iterable[Row]:
        if row.get(EVENT_TYPE) == END:
            return ()
        return (row,)
