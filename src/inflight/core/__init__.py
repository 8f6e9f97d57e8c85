"""Core pipeline execution engine."""

from .pipeline_environment import PipelineEnvironment

__all__ = ["PipelineEnvironment"]
