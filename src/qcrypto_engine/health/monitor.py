"""Sliding-window entropy health monitor.

Each collector batch is scored with the binary Shannon entropy of its raw
bit frequency and pushed onto a bounded window. Health and status are pure
functions of the window average. The score is an order-0 estimate used as an
admission policy; it is not a substitute for SP 800-90B style health tests.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

from qcrypto_engine.conditioning.bits import shannon_entropy
from qcrypto_engine.health.types import HealthStatus
from qcrypto_engine.pool.locks import ReadWriteLock

if TYPE_CHECKING:
    from collections.abc import Iterable

    import numpy as np

    from qcrypto_engine.config import EngineConfig


class HealthMonitor:
    """Ring buffer of recent batch scores with threshold classification.

    Args:
        window_size: Maximum number of scores kept; oldest are evicted.
        min_samples: Below this many samples the monitor always reports
            healthy so that startup is never blocked.
        healthy_threshold: Average at or above which batches are admitted
            and status is at least ``GOOD``.
        excellent_threshold: Average at or above which status is
            ``EXCELLENT``.
        degraded_threshold: Average at or above which status is
            ``DEGRADED`` rather than ``FAILED``.
    """

    def __init__(
        self,
        window_size: int = 100,
        min_samples: int = 10,
        healthy_threshold: float = 0.85,
        excellent_threshold: float = 0.95,
        degraded_threshold: float = 0.70,
    ) -> None:
        self._window: deque[float] = deque(maxlen=window_size)
        self._min_samples = min_samples
        self._healthy_threshold = healthy_threshold
        self._excellent_threshold = excellent_threshold
        self._degraded_threshold = degraded_threshold
        self._lock = ReadWriteLock()

    @classmethod
    def from_config(cls, config: EngineConfig) -> HealthMonitor:
        """Build a monitor from the window and threshold fields of *config*."""
        return cls(
            window_size=config.window_size,
            min_samples=config.min_samples,
            healthy_threshold=config.healthy_threshold,
            excellent_threshold=config.excellent_threshold,
            degraded_threshold=config.degraded_threshold,
        )

    @property
    def window_size(self) -> int:
        return self._window.maxlen or 0

    @property
    def sample_count(self) -> int:
        with self._lock.read_locked():
            return len(self._window)

    def update_statistics(self, bits: Iterable[int] | np.ndarray) -> float:
        """Score a batch and push the score onto the window.

        Args:
            bits: The raw batch, before any debiasing.

        Returns:
            The batch's Shannon entropy in ``[0, 1]``.
        """
        score = shannon_entropy(bits)
        self.record_score(score)
        return score

    def record_score(self, score: float) -> None:
        """Push a precomputed score onto the window."""
        with self._lock.write_locked():
            self._window.append(score)

    def average_entropy(self) -> float:
        """Mean of the window, or ``0.0`` when it is empty."""
        with self._lock.read_locked():
            return self._average_locked()

    def _average_locked(self) -> float:
        if not self._window:
            return 0.0
        return sum(self._window) / len(self._window)

    def is_healthy(self) -> bool:
        """Admission gate: grace period, then average vs healthy threshold."""
        with self._lock.read_locked():
            if len(self._window) < self._min_samples:
                return True
            return self._average_locked() >= self._healthy_threshold

    def current_status(self) -> HealthStatus:
        """Classify the window average. Bucket lower bounds are inclusive."""
        return self.snapshot()[0]

    def snapshot(self) -> tuple[HealthStatus, float, int]:
        """Status, window average and sample count read under one lock."""
        with self._lock.read_locked():
            count = len(self._window)
            avg = self._average_locked()
        return self._classify(avg, count), avg, count

    def _classify(self, avg: float, count: int) -> HealthStatus:
        if count == 0:
            return HealthStatus.INITIALIZING
        if avg >= self._excellent_threshold:
            return HealthStatus.EXCELLENT
        if avg >= self._healthy_threshold:
            return HealthStatus.GOOD
        if avg >= self._degraded_threshold:
            return HealthStatus.DEGRADED
        return HealthStatus.FAILED

    def reset(self) -> None:
        """Drop all samples; status returns to ``INITIALIZING``."""
        with self._lock.write_locked():
            self._window.clear()
