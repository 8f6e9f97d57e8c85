"""
Pipeline configuration.

This module provides the configuration models for:
- The reordering window and channel sizing
- CSV output formatting
- Concurrency summary reporting
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .durations import parse_window_millis

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_MS = 60 * 60 * 1000


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""
    pass


class OutputConfig(BaseModel):
    """CSV output settings."""

    tabs: bool = False
    flush_rows: int = Field(default=500, ge=1)

    @property
    def delimiter(self) -> str:
        return "\t" if self.tabs else ","


class MetricsConfig(BaseModel):
    """Concurrency summary settings."""

    percentiles_to_calculate: List[float] = Field(default_factory=lambda: [0.5, 0.9, 0.95, 0.99])
    output_summary_json_path: Optional[str] = None

    @field_validator("percentiles_to_calculate")
    @classmethod
    def _check_percentiles(cls, value: List[float]) -> List[float]:
        for p in value:
            if not 0 < p <= 1:
                raise ValueError(f"percentile {p} must be in (0, 1]")
        return value


class PipelineConfig(BaseModel):
    """Complete pipeline configuration."""

    # Maximum disorder of the event stream, in milliseconds. Accepts Go-style
    # duration text such as "1h" or "90m".
    window: int = DEFAULT_WINDOW_MS
    channel_capacity: int = Field(default=256, ge=1)
    exact_sort: bool = False
    restore_input_order: bool = False
    output: OutputConfig = Field(default_factory=OutputConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @field_validator("window", mode="before")
    @classmethod
    def _parse_window(cls, value: Any) -> int:
        window = parse_window_millis(value)
        if window <= 0:
            raise ValueError(f"window must be positive, got {value!r}")
        return window

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PipelineConfig":
        try:
            return cls.model_validate(data or {})
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

    @classmethod
    def from_yaml_file(cls, config_path: str) -> "PipelineConfig":
        """Load configuration from a YAML file."""
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data)

    @classmethod
    def from_json_file(cls, config_path: str) -> "PipelineConfig":
        """Load configuration from a JSON file."""
        with open(config_path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, config_path: str) -> "PipelineConfig":
        if Path(config_path).suffix in [".yaml", ".yml"]:
            return cls.from_yaml_file(config_path)
        return cls.from_json_file(config_path)

    def with_overrides(self, **overrides: Any) -> "PipelineConfig":
        """Return a copy with the non-None overrides applied (CLI flags win)."""
        data = self.model_dump()
        for key, value in overrides.items():
            if value is None:
                continue
            if key in ("tabs", "flush_rows"):
                data["output"][key] = value
            elif key == "summary_path":
                data["metrics"]["output_summary_json_path"] = value
            else:
                data[key] = value
        return PipelineConfig.from_dict(data)


EXAMPLE_CONFIG: Dict[str, Any] = {
    "window": "1h",
    "channel_capacity": 256,
    "exact_sort": False,
    "restore_input_order": False,
    "output": {
        "tabs": False,
        "flush_rows": 500,
    },
    "metrics": {
        "percentiles_to_calculate": [0.5, 0.9, 0.95, 0.99],
        "output_summary_json_path": None,
    },
}


def validate_config_file(config_path: str) -> Tuple[bool, List[str], Optional[PipelineConfig]]:
    """
    Load and validate a configuration file.

    Returns:
        (is_valid, errors, config)
    """
    config_file = Path(config_path)

    with open(config_file) as f:
        if config_file.suffix in [".yaml", ".yml"]:
            data = yaml.safe_load(f)
        else:
            data = json.load(f)

    try:
        config = PipelineConfig.model_validate(data or {})
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        logger.warning(f"Configuration has {len(errors)} validation errors")
        for error in errors[:10]:
            logger.warning(f"  - {error}")
        return False, errors, None

    return True, [], config
