"""inflight: request concurrency analysis for HTTP access logs."""

__version__ = "0.1.0"
