"""Pipeline assembly and execution."""

from .pipeline_orchestrator import PipelineOrchestrator

__all__ = ["PipelineOrchestrator"]
