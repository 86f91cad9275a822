"""Health status values reported by the monitor."""

from __future__ import annotations

from enum import Enum


class HealthStatus(str, Enum):
    """Discrete pool-health classification.

    Ordered from best to worst after ``INITIALIZING``, which is reported
    only while the monitor has no samples at all.
    """

    INITIALIZING = "Initializing"
    EXCELLENT = "Excellent"
    GOOD = "Good"
    DEGRADED = "Degraded"
    FAILED = "Failed"

    def __str__(self) -> str:
        return self.value
