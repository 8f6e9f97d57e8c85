"""Tabular row I/O and sorting."""

from .io import CsvRowReader, CsvRowWriter
from .sort import SortKeys

__all__ = ["CsvRowReader", "CsvRowWriter", "SortKeys"]
