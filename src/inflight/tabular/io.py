"""CSV row sources and sinks.

Rows are read with the ``csv`` module so that every record can be checked
against the header width, and written in pandas chunks.
"""

import csv
import logging
from typing import Dict, Iterator, List, Optional, TextIO

import pandas as pd

logger = logging.getLogger(__name__)

Row = Dict[str, str]


class CsvRowReader:
    """Reads a CSV stream with a header line as a sequence of string rows.

    Every record must have exactly as many fields as the header; anything
    else raises ``ValueError``. Blank lines are skipped.
    """

    def __init__(self, stream: TextIO, delimiter: str = ","):
        """Initialize the reader and consume the header line.

        Args:
            stream: Text stream positioned at the header line
            delimiter: Field separator
        """
        self.stream = stream
        self.delimiter = delimiter
        self.rows_read = 0
        self.closed = False

        self._records = csv.reader(stream, delimiter=delimiter)
        self.header: List[str] = []
        for record in self._records:
            if record:
                self.header = record
                break

        logger.debug(f"CsvRowReader header: {self.header}")

    def __iter__(self) -> Iterator[Row]:
        if not self.header:
            return
        width = len(self.header)
        for record in self._records:
            if not record:
                continue
            if len(record) != width:
                raise ValueError(
                    f"wrong number of fields on row {self._records.line_num}: "
                    f"expected {width}, got {len(record)}"
                )
            self.rows_read += 1
            yield dict(zip(self.header, record))

    def close(self) -> None:
        # the underlying stream belongs to the caller
        self.closed = True


class CsvRowWriter:
    """Buffers rows and writes them to a text stream in pandas chunks."""

    def __init__(
        self,
        stream: TextIO,
        header: List[str],
        delimiter: str = ",",
        flush_rows: int = 500,
    ):
        self.stream = stream
        self.header = list(header)
        self.delimiter = delimiter
        self.flush_rows = flush_rows
        self.rows_written = 0
        self.closed = False
        self._buffer: List[Row] = []
        self._header_written = False

    def write(self, row: Row) -> None:
        """Queue a row; fields outside the header are ignored, missing ones empty."""
        if self.closed:
            raise ValueError("write to closed CsvRowWriter")
        self._buffer.append(row)
        if len(self._buffer) >= self.flush_rows:
            self.flush()

    def flush(self) -> None:
        if not self._buffer and self._header_written:
            return
        frame = pd.DataFrame.from_records(self._buffer, columns=self.header)
        frame = frame.fillna("")
        frame.to_csv(
            self.stream,
            sep=self.delimiter,
            index=False,
            header=not self._header_written,
            lineterminator="\n",
        )
        self.rows_written += len(self._buffer)
        self._header_written = True
        self._buffer = []

    def close(self, error: Optional[BaseException] = None) -> None:
        """Flush and close. After a failed run buffered rows are discarded."""
        if self.closed:
            return
        if error is None:
            self.flush()
            self.stream.flush()
        else:
            logger.debug(f"Discarding {len(self._buffer)} buffered rows after error: {error}")
            self._buffer = []
        self.closed = True
