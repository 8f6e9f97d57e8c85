"""Abstract base class for pipeline stages."""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional, Tuple

import simpy

from .models import EndOfStream, StreamHeader

logger = logging.getLogger(__name__)

Row = Dict[str, str]


class StageError(RuntimeError):
    """The first fatal failure of a pipeline run, tagged with the failing stage."""

    def __init__(self, stage_id: str, cause: BaseException):
        super().__init__(f"{stage_id}: {cause}")
        self.stage_id = stage_id
        self.cause = cause


class AbstractStage(ABC):
    """A sequential stage reading rows from one channel and writing to another.

    Channels are ``simpy.Store`` instances. Each carries one ``StreamHeader``,
    then rows, then one ``EndOfStream``. Subclasses implement the per-row
    transformation; the processing loop, header propagation and failure
    reporting live here.
    """

    def __init__(self, stage_id: str):
        self.stage_id = stage_id
        self.inbox: Optional[simpy.Store] = None
        self.outbox: Optional[simpy.Store] = None
        self.completion: Optional[simpy.Event] = None
        self.rows_in = 0
        self.rows_out = 0

        logger.debug(f"Initialized {self.__class__.__name__} stage: {stage_id}")

    def connect(
        self,
        inbox: Optional[simpy.Store],
        outbox: Optional[simpy.Store],
        completion: simpy.Event,
    ) -> None:
        """Attach the stage to its channels and the run's completion event."""
        self.inbox = inbox
        self.outbox = outbox
        self.completion = completion

    @abstractmethod
    def output_header(self, header: Tuple[str, ...]) -> Tuple[str, ...]:
        """Field names of the rows this stage emits, given its input header."""
        pass

    @abstractmethod
    def process_row(self, row: Row) -> Iterable[Row]:
        """Transform one input row into zero or more output rows."""
        pass

    def finish(self) -> Iterable[Row]:
        """Rows still held when the input is exhausted."""
        return ()

    def close(self, error: Optional[BaseException] = None) -> None:
        """Release resources. Called once by the orchestrator after the run."""
        pass

    def get_status(self) -> Dict[str, int]:
        return {"rows_in": self.rows_in, "rows_out": self.rows_out}

    def processing_loop(self) -> simpy.events.Event:
        """Main loop: forward the header, transform rows, propagate end of stream."""
        try:
            header = yield self.inbox.get()
            if not isinstance(header, StreamHeader):
                raise ValueError(f"expected a stream header, got {type(header).__name__}")
            yield self.outbox.put(StreamHeader(self.output_header(header.fields)))

            while True:
                item = yield self.inbox.get()
                if isinstance(item, EndOfStream):
                    if item.error is None:
                        for out in self.finish():
                            yield from self._emit(out)
                    else:
                        logger.debug(f"{self.stage_id} forwarding upstream failure")
                    yield self.outbox.put(item)
                    return
                self.rows_in += 1
                for out in self.process_row(item):
                    yield from self._emit(out)
        except Exception as e:
            self.fail(e)

    def _emit(self, row: Row):
        self.rows_out += 1
        yield self.outbox.put(row)

    def fail(self, error: BaseException) -> None:
        """Close the output with the error and report it as the run's outcome."""
        logger.error(f"Stage {self.stage_id} failed: {error}")
        if self.outbox is not None:
            self.outbox.put(EndOfStream(error=error))
        if self.completion is not None and not self.completion.triggered:
            self.completion.fail(StageError(self.stage_id, error))
