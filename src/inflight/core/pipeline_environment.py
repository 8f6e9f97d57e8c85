"""Pipeline execution environment wrapper around SimPy."""

import logging
from typing import Any, Callable, Dict, Optional

import simpy

logger = logging.getLogger(__name__)


class PipelineEnvironment:
    """Wrapper around simpy.Environment that runs a set of stage processes
    until a single completion event fires.

    Stages are scheduled as SimPy processes and exchange rows through bounded
    ``simpy.Store`` channels, so a stage suspends when its input is empty or
    its output is full. The completion event is succeeded by the sink, or
    failed by the first stage that hits a fatal error.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None) -> None:
        """Initialize the environment.

        Args:
            config: Environment configuration containing:
                - channel_capacity: Maximum number of items buffered per channel
        """
        self.env: simpy.Environment = simpy.Environment()
        self.config: Dict[str, Any] = config or {}
        self.channel_capacity: int = self.config.get("channel_capacity", 256)
        self.completion: simpy.Event = self.env.event()

        logger.info(f"PipelineEnvironment initialized (channel capacity {self.channel_capacity})")

    def channel(self) -> simpy.Store:
        """Create a bounded channel between two stages."""
        return simpy.Store(self.env, capacity=self.channel_capacity)

    def schedule_process(self, process_generator_func: Callable, *args, **kwargs) -> simpy.Process:
        """Schedule a stage loop (a generator function) as a SimPy process."""
        process = self.env.process(process_generator_func(*args, **kwargs))
        logger.debug(f"Scheduled process: {process_generator_func.__name__}")
        return process

    def run(self) -> Any:
        """Run until the completion event fires.

        Returns:
            The completion value (rows written by the sink)

        Raises:
            The error the completion event failed with
        """
        try:
            result = self.env.run(until=self.completion)
            logger.debug(f"Pipeline completed: {result} rows written")
            return result
        except Exception as e:
            logger.error(f"Pipeline failed: {e}")
            raise
