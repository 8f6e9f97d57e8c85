"""Data models for the event pipeline."""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from ..records.models import REQUEST_ID

ORDINAL = "ordinal"
UNIX = "unix"
EVENT_TYPE = "eventType"
ACTIVE = "active"
OLDEST = "oldest"

START = "start"
END = "end"

SPLIT_FIELDS = (ORDINAL, UNIX, EVENT_TYPE)
COUNT_FIELDS = (ACTIVE, OLDEST)


@dataclass(frozen=True)
class StreamHeader:
    """First item on every channel: the field names of the rows that follow."""

    fields: Tuple[str, ...]


@dataclass(frozen=True)
class EndOfStream:
    """Last item on every channel. ``error`` is set when the producer failed."""

    error: Optional[BaseException] = None


@dataclass
class Event:
    """The start or end instant of one request."""

    ordinal: int
    timestamp_millis: int
    kind: str  # START or END
    request_id: str
    payload: Dict[str, str] = field(default_factory=dict)

    def to_row(self) -> Dict[str, str]:
        row = dict(self.payload)
        row[ORDINAL] = str(self.ordinal)
        row[UNIX] = str(self.timestamp_millis)
        row[EVENT_TYPE] = self.kind
        row[REQUEST_ID] = self.request_id
        return row

    @classmethod
    def from_row(cls, row: Dict[str, str]) -> "Event":
        """Interpret a split row.

        Raises:
            ValueError: if ``ordinal`` or ``unix`` is not an integer
        """
        try:
            ordinal = int(row[ORDINAL])
            timestamp = int(row[UNIX])
        except (KeyError, ValueError) as e:
            raise ValueError(
                f"row is not an event: ordinal={row.get(ORDINAL)!r} unix={row.get(UNIX)!r}"
            ) from e
        return cls(
            ordinal=ordinal,
            timestamp_millis=timestamp,
            kind=row.get(EVENT_TYPE, ""),
            request_id=row.get(REQUEST_ID, ""),
            payload=row,
        )


def extend_header(header: Tuple[str, ...], extra: Tuple[str, ...]) -> Tuple[str, ...]:
    """Append fields not already present."""
    return tuple(header) + tuple(name for name in extra if name not in header)
