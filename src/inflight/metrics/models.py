"""Data models for concurrency metrics."""

from dataclasses import dataclass


@dataclass
class ConcurrencySample:
    """Concurrency observed when one request started."""

    request_id: str
    started_at: str
    duration_ms: int
    active: int
    oldest: str
