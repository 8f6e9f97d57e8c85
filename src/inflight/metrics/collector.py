"""Concurrency summary over the annotated output rows."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from ..records.models import STARTED_AT, RequestRecord
from ..stages.models import ACTIVE, OLDEST
from ..utils.config import MetricsConfig
from .models import ConcurrencySample

logger = logging.getLogger(__name__)


class ConcurrencyMetricsCollector:
    """Aggregates the ``active`` annotations of the pipeline's final rows."""

    def __init__(self, config: Optional[MetricsConfig] = None):
        """Initialize the metrics collector.

        Args:
            config: Metrics configuration containing:
                - percentiles_to_calculate: List of percentiles (e.g., [0.5, 0.9, 0.99])
                - output_summary_json_path: Path to save the summary report
        """
        self.config = config or MetricsConfig()
        self.samples: List[ConcurrencySample] = []

        logger.info("ConcurrencyMetricsCollector initialized")

    def observe_row(self, row: Dict[str, str]) -> None:
        """Record one annotated request row."""
        try:
            active = int(row.get(ACTIVE, ""))
        except ValueError:
            return
        record = RequestRecord.from_row(row)
        self.samples.append(
            ConcurrencySample(
                request_id=record.request_id,
                started_at=row.get(STARTED_AT, ""),
                duration_ms=record.duration_ms,
                active=active,
                oldest=row.get(OLDEST, ""),
            )
        )

    def generate_summary_report(self) -> Dict[str, Any]:
        """Generate summary statistics.

        Returns:
            Dictionary containing request counts, concurrency and duration stats
        """
        percentiles = self.config.percentiles_to_calculate
        active_values = [s.active for s in self.samples]
        duration_values = [s.duration_ms for s in self.samples]

        summary: Dict[str, Any] = {
            "requests": {
                "total": len(self.samples),
                "with_overlap": sum(1 for v in active_values if v > 0),
            },
            "concurrency": self._calculate_stats(active_values, percentiles),
            "duration_ms": self._calculate_stats(duration_values, percentiles),
        }

        if self.samples:
            peak = max(self.samples, key=lambda s: s.active)
            summary["peak"] = {
                "active": peak.active,
                "started_at": peak.started_at,
                "request_id": peak.request_id,
                "oldest": peak.oldest,
            }

        logger.info("=" * 60)
        logger.info("CONCURRENCY SUMMARY")
        logger.info("=" * 60)
        logger.info(f"Requests: {summary['requests']['total']} total, "
                    f"{summary['requests']['with_overlap']} overlapping another request")
        if self.samples:
            logger.info(f"Active (at start): mean={summary['concurrency']['mean']:.2f}, "
                        f"max={summary['concurrency']['max']:.0f} "
                        f"(request {summary['peak']['request_id']} at {summary['peak']['started_at']})")
        logger.info("=" * 60)

        return summary

    def save_summary_report(self, summary: Dict[str, Any], path: Optional[str] = None) -> Optional[Path]:
        """Write the summary as JSON to ``path`` or the configured location."""
        summary_path = path or self.config.output_summary_json_path
        if not summary_path:
            return None
        summary_file = Path(summary_path)
        summary_file.parent.mkdir(parents=True, exist_ok=True)
        with open(summary_file, "w") as f:
            json.dump(summary, f, indent=2)
        logger.info(f"Saved summary report to {summary_file}")
        return summary_file

    def get_samples_df(self) -> pd.DataFrame:
        """Get all samples as a pandas DataFrame."""
        if not self.samples:
            return pd.DataFrame(columns=["request_id", "started_at", "duration_ms", "active", "oldest"])
        return pd.DataFrame([vars(s) for s in self.samples])

    def _calculate_stats(self, values: List[float], percentiles: List[float]) -> Dict[str, float]:
        """Calculate statistics for a list of values."""
        if not values:
            return {"count": 0}

        stats = {
            "count": len(values),
            "mean": float(np.mean(values)),
            "std": float(np.std(values)),
            "min": float(np.min(values)),
            "max": float(np.max(values)),
        }

        for p in percentiles:
            stats[f"p{int(round(p * 100))}"] = float(np.percentile(values, p * 100))

        return stats
