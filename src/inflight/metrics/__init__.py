"""Metrics collection and reporting module."""

from .collector import ConcurrencyMetricsCollector
from .models import ConcurrencySample

__all__ = ["ConcurrencyMetricsCollector", "ConcurrencySample"]
