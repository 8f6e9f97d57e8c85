"""Full in-memory sort as a pipeline stage."""

from typing import Iterable, List, Tuple

from ..tabular.sort import SortKeys
from .abstract_stage import AbstractStage, Row


class SortStage(AbstractStage):
    """Collects the whole stream and emits it sorted by ``sort_keys``."""

    def __init__(self, sort_keys: SortKeys, stage_id: str = "sort"):
        super().__init__(stage_id)
        self.sort_keys = sort_keys
        self.rows: List[Row] = []

    def output_header(self, header: Tuple[str, ...]) -> Tuple[str, ...]:
        return header

    def process_row(self, row: Row) -> Iterable[Row]:
        self.sort_keys.key_of(row)  # reject bad keys as soon as they arrive
        self.rows.append(row)
        return ()

    def finish(self) -> Iterable[Row]:
        rows, self.rows = self.rows, []
        return self.sort_keys.sort_rows(rows)
