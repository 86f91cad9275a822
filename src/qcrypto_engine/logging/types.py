"""Data types for the collection logging subsystem."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class BatchRecord:
    """Immutable record of a single collector cycle.

    Attributes:
        timestamp_ns: Wall-clock time of the cycle (nanoseconds since epoch).
        source_name: Name of the source that was sampled.
        batch_bits: Raw bits received (0 when the source failed).
        admitted_bits: Bits mixed into the pool after debiasing (0 if the
            batch was rejected or failed).
        entropy_score: Shannon score of the raw batch, or ``None`` on failure.
        window_average: Monitor window average after this cycle.
        health_status: Monitor status after this cycle.
        admitted: Whether the batch reached the pool.
        fetch_ms: Time spent inside the source call (milliseconds).
        consecutive_failures: Failure counter after this cycle.
        error: Failure message, or ``None`` for a successful fetch.
    """

    timestamp_ns: int
    source_name: str
    batch_bits: int
    admitted_bits: int
    entropy_score: float | None
    window_average: float
    health_status: str
    admitted: bool
    fetch_ms: float
    consecutive_failures: int
    error: str | None = None
