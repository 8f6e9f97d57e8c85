"""Pipeline orchestrator: builds stage chains and runs them to completion."""

import logging
from typing import Any, Dict, List, Optional, TextIO

from ..core import PipelineEnvironment
from ..metrics import ConcurrencyMetricsCollector
from ..stages import (
    AbstractStage,
    ActiveIntervalCounter,
    DecodeStage,
    EndEventFilter,
    EventSplitter,
    SinkStage,
    SortStage,
    SourceStage,
    WindowedReorderer,
    started_at_key,
)
from ..stages.io_stages import LINE, line_rows
from ..stages.models import ORDINAL, UNIX
from ..tabular import CsvRowReader, CsvRowWriter, SortKeys
from ..utils.config import PipelineConfig

logger = logging.getLogger(__name__)


class PipelineOrchestrator:
    """Main entry point to assemble and run the analysis pipelines."""

    def __init__(self, config: Optional[PipelineConfig] = None):
        """Initialize the orchestrator.

        Args:
            config: Pipeline configuration; defaults apply when omitted
        """
        self.config = config or PipelineConfig()
        self.stages: List[AbstractStage] = []
        self.metrics_collector: Optional[ConcurrencyMetricsCollector] = None

        logger.info(
            f"PipelineOrchestrator initialized (window {self.config.window}ms, "
            f"channel capacity {self.config.channel_capacity})"
        )

    def run_analysis(
        self,
        input_stream: TextIO,
        output_stream: TextIO,
        pre_parsed: bool = False,
        collect_metrics: bool = False,
    ) -> Dict[str, Any]:
        """Decode, split, reorder, count and filter.

        Args:
            input_stream: Raw access log, or CSV from ``run_parse`` when ``pre_parsed``
            output_stream: Destination for the annotated CSV
            pre_parsed: Whether the input is already decoded CSV
            collect_metrics: Whether to build a concurrency summary

        Returns:
            Run summary dictionary
        """
        stages = self._input_stages(input_stream, pre_parsed)
        stages.append(EventSplitter())
        if self.config.exact_sort:
            stages.append(SortStage(SortKeys([UNIX, ORDINAL], numeric=[UNIX, ORDINAL]), stage_id="sort-events"))
        else:
            stages.append(WindowedReorderer(self.config.window))
        stages.append(ActiveIntervalCounter())
        if self.config.restore_input_order:
            stages.append(SortStage(SortKeys([ORDINAL], numeric=[ORDINAL]), stage_id="sort-ordinal"))
        stages.append(EndEventFilter())

        observers = []
        self.metrics_collector = None
        if collect_metrics or self.config.metrics.output_summary_json_path:
            self.metrics_collector = ConcurrencyMetricsCollector(self.config.metrics)
            observers.append(self.metrics_collector.observe_row)

        summary = self._execute(stages, output_stream, observers)

        if self.metrics_collector is not None:
            report = self.metrics_collector.generate_summary_report()
            self.metrics_collector.save_summary_report(report)
            summary["concurrency"] = report
        return summary

    def run_parse(self, input_stream: TextIO, output_stream: TextIO) -> Dict[str, Any]:
        """Decode raw log lines into request record CSV."""
        return self._execute(self._input_stages(input_stream, pre_parsed=False), output_stream)

    def run_sort(self, input_stream: TextIO, output_stream: TextIO, pre_parsed: bool = False) -> Dict[str, Any]:
        """Order request rows by ``startedAt`` with the windowed reorderer."""
        stages = self._input_stages(input_stream, pre_parsed)
        stages.append(WindowedReorderer(self.config.window, key=started_at_key, stage_id="sort-started-at"))
        return self._execute(stages, output_stream)

    def _input_stages(self, input_stream: TextIO, pre_parsed: bool) -> List[AbstractStage]:
        if pre_parsed:
            reader = CsvRowReader(input_stream)
            return [SourceStage("read-csv", reader.header, reader, on_close=reader.close)]
        return [SourceStage("read-lines", (LINE,), line_rows(input_stream)), DecodeStage()]

    def _writer_factory(self, output_stream: TextIO):
        output = self.config.output

        def build(header: List[str]) -> CsvRowWriter:
            return CsvRowWriter(
                output_stream, header, delimiter=output.delimiter, flush_rows=output.flush_rows
            )

        return build

    def _execute(
        self,
        stages: List[AbstractStage],
        output_stream: TextIO,
        observers: Optional[list] = None,
    ) -> Dict[str, Any]:
        """Wire stages with bounded channels, run them and release every stage."""
        pipeline_env = PipelineEnvironment({"channel_capacity": self.config.channel_capacity})
        sink = SinkStage("write-csv", self._writer_factory(output_stream), observers)
        self.stages = stages + [sink]

        upstream = None
        for i, stage in enumerate(self.stages):
            downstream = pipeline_env.channel() if i < len(self.stages) - 1 else None
            stage.connect(upstream, downstream, pipeline_env.completion)
            upstream = downstream

        for stage in self.stages:
            pipeline_env.schedule_process(stage.processing_loop)
        logger.info(f"Running pipeline: {' -> '.join(s.stage_id for s in self.stages)}")

        error: Optional[BaseException] = None
        try:
            rows_written = pipeline_env.run()
        except Exception as e:
            error = e
            raise
        finally:
            for stage in self.stages:
                stage.close(error)

        summary = {
            "rows_written": rows_written,
            "stages": {stage.stage_id: stage.get_status() for stage in self.stages},
        }
        logger.info(f"Pipeline finished: {rows_written} rows written")
        return summary
