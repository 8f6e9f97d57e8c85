"""Pipeline stage implementations."""

from .abstract_stage import AbstractStage, StageError
from .counter import ActiveIntervalCounter
from .filter import EndEventFilter
from .io_stages import DecodeStage, SinkStage, SourceStage
from .models import EndOfStream, Event, StreamHeader
from .reorderer import WindowedReorderer, event_key, started_at_key
from .sort_stage import SortStage
from .splitter import EventSplitter

__all__ = [
    "AbstractStage",
    "StageError",
    "ActiveIntervalCounter",
    "EndEventFilter",
    "DecodeStage",
    "SinkStage",
    "SourceStage",
    "EndOfStream",
    "Event",
    "StreamHeader",
    "WindowedReorderer",
    "event_key",
    "started_at_key",
    "SortStage",
    "EventSplitter",
]
