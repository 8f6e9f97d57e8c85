"""Stable sort of rows by named fields."""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Sequence, Tuple


@dataclass
class SortKeys:
    """Sort specification: ``keys`` in priority order, ``numeric`` compared as numbers."""

    keys: List[str]
    numeric: List[str] = field(default_factory=list)

    def key_of(self, row: Dict[str, str]) -> Tuple:
        values = []
        for name in self.keys:
            value = row.get(name, "")
            if name in self.numeric:
                try:
                    number = Decimal(value)
                except InvalidOperation:
                    number = None
                if number is None or not number.is_finite():
                    raise ValueError(f"non-numeric value {value!r} in sort key {name!r}")
                values.append(number)
            else:
                values.append(value)
        return tuple(values)

    def sort_rows(self, rows: Sequence[Dict[str, str]]) -> List[Dict[str, str]]:
        return sorted(rows, key=self.key_of)
