"""Stages at the edges of the pipeline: the row source, the line decoder and the sink."""

import logging
from typing import Callable, Iterable, List, Optional, Tuple

import simpy

from ..records.decoder import MalformedFields, NotRequestLine, TooFewFields, decode_line
from ..records.models import RECORD_FIELDS
from ..tabular.io import CsvRowWriter
from .abstract_stage import AbstractStage, Row, StageError
from .models import EndOfStream, StreamHeader

logger = logging.getLogger(__name__)

LINE = "line"


class SourceStage(AbstractStage):
    """Feeds an iterable of rows into the first channel."""

    def __init__(self, stage_id: str, header: Iterable[str], rows: Iterable[Row], on_close=None):
        super().__init__(stage_id)
        self.header = tuple(header)
        self.rows = rows
        self._on_close = on_close

    def output_header(self, header: Tuple[str, ...]) -> Tuple[str, ...]:
        return self.header

    def process_row(self, row: Row) -> Iterable[Row]:
        return (row,)

    def processing_loop(self) -> simpy.events.Event:
        try:
            yield self.outbox.put(StreamHeader(self.header))
            for row in self.rows:
                self.rows_in += 1
                for out in self.process_row(row):
                    yield from self._emit(out)
            yield self.outbox.put(EndOfStream())
        except Exception as e:
            self.fail(e)

    def close(self, error: Optional[BaseException] = None) -> None:
        if self._on_close is not None:
            self._on_close()


def line_rows(stream) -> Iterable[Row]:
    """Wrap each text line of a stream as a single-field row."""
    for line in stream:
        yield {LINE: line}


class DecodeStage(AbstractStage):
    """Decodes access-log lines into request record rows.

    Lines that are not HTTP entries, or are too short, are skipped silently;
    other malformed entries are logged and skipped.
    """

    def __init__(self, stage_id: str = "decode"):
        super().__init__(stage_id)
        self.lines_skipped = 0
        self.lines_malformed = 0

    def output_header(self, header: Tuple[str, ...]) -> Tuple[str, ...]:
        return tuple(RECORD_FIELDS)

    def process_row(self, row: Row) -> Iterable[Row]:
        line = row.get(LINE, "").strip()
        try:
            record = decode_line(line)
        except (NotRequestLine, TooFewFields):
            self.lines_skipped += 1
            return ()
        except MalformedFields as e:
            self.lines_malformed += 1
            logger.warning(f"Skipping malformed log line: {e}")
            return ()
        return (record.to_row(),)

    def get_status(self):
        status = super().get_status()
        status["lines_skipped"] = self.lines_skipped
        status["lines_malformed"] = self.lines_malformed
        return status


class SinkStage(AbstractStage):
    """Writes the final rows and signals successful completion of the run."""

    def __init__(
        self,
        stage_id: str,
        writer_factory: Callable[[List[str]], CsvRowWriter],
        observers: Optional[List[Callable[[Row], None]]] = None,
    ):
        super().__init__(stage_id)
        self.writer_factory = writer_factory
        self.observers = observers or []
        self.writer: Optional[CsvRowWriter] = None

    def output_header(self, header: Tuple[str, ...]) -> Tuple[str, ...]:
        return header

    def process_row(self, row: Row) -> Iterable[Row]:
        self.writer.write(row)
        for observer in self.observers:
            observer(row)
        return ()

    def processing_loop(self) -> simpy.events.Event:
        try:
            header = yield self.inbox.get()
            if not isinstance(header, StreamHeader):
                raise ValueError(f"expected a stream header, got {type(header).__name__}")
            self.writer = self.writer_factory(list(header.fields))

            while True:
                item = yield self.inbox.get()
                if isinstance(item, EndOfStream):
                    if item.error is not None:
                        self._report(item.error)
                        return
                    self.writer.close()
                    if not self.completion.triggered:
                        self.completion.succeed(self.writer.rows_written)
                    return
                self.rows_in += 1
                self.process_row(item)
                self.rows_out += 1
        except Exception as e:
            self.fail(e)

    def _report(self, error: BaseException) -> None:
        if not self.completion.triggered:
            cause = error if isinstance(error, StageError) else StageError("upstream", error)
            self.completion.fail(cause)

    def close(self, error: Optional[BaseException] = None) -> None:
        if self.writer is not None:
            self.writer.close(error)
