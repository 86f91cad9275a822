"""Shared pytest fixtures for qcrypto-engine tests.

Provides configuration objects with fast collector timing, scripted entropy
sources, and pre-filled pools used across multiple test modules.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import numpy as np
import pytest

from qcrypto_engine.config import EngineConfig
from qcrypto_engine.engine import QuantumCryptoEngine
from qcrypto_engine.entropy.base import EntropySource
from qcrypto_engine.exceptions import SourceFailureError
from qcrypto_engine.pool.entropy_pool import EntropyPool


def make_config(**overrides: Any) -> EngineConfig:
    """Build an EngineConfig isolated from any ``.env`` file.

    Collector timing defaults to zero so loop tests finish quickly.
    """
    defaults: dict[str, Any] = {
        "cycle_interval_s": 0.0,
        "failure_backoff_s": 0.0,
        "join_timeout_s": 5.0,
        "log_level": "none",
    }
    defaults.update(overrides)
    return EngineConfig(_env_file=None, **defaults)  # type: ignore[call-arg]


class ConstantSource(EntropySource):
    """Test double: returns the same bit value for every sample."""

    def __init__(self, bit: int = 1) -> None:
        self._bit = bit
        self.call_count = 0
        self.closed = False

    @property
    def name(self) -> str:
        return f"constant_{self._bit}"

    @property
    def is_available(self) -> bool:
        return not self.closed

    def sample(self, num_bits: int) -> np.ndarray:
        self.call_count += 1
        return np.full(num_bits, self._bit, dtype=np.uint8)

    def close(self) -> None:
        self.closed = True


class AlternatingSource(EntropySource):
    """Test double: emits 0101... which scores exactly 1.0."""

    def __init__(self) -> None:
        self.call_count = 0

    @property
    def name(self) -> str:
        return "alternating"

    @property
    def is_available(self) -> bool:
        return True

    def sample(self, num_bits: int) -> np.ndarray:
        self.call_count += 1
        return (np.arange(num_bits) % 2).astype(np.uint8)

    def close(self) -> None:
        pass


class FailingSource(EntropySource):
    """Test double: raises on every call.

    Args:
        exc_type: Exception raised by ``sample()``.
        succeed_first: Number of calls that return alternating bits before
            the source starts failing.
    """

    def __init__(
        self,
        exc_type: type[Exception] = SourceFailureError,
        succeed_first: int = 0,
    ) -> None:
        self._exc_type = exc_type
        self._succeed_first = succeed_first
        self.call_count = 0

    @property
    def name(self) -> str:
        return "failing"

    @property
    def is_available(self) -> bool:
        return False

    def sample(self, num_bits: int) -> np.ndarray:
        self.call_count += 1
        if self.call_count <= self._succeed_first:
            return (np.arange(num_bits) % 2).astype(np.uint8)
        raise self._exc_type("sensor unplugged")

    def close(self) -> None:
        pass


@pytest.fixture
def fast_config() -> EngineConfig:
    """Default thresholds, zero sleeps, no per-batch logging."""
    return make_config()


@pytest.fixture
def diagnostic_config() -> EngineConfig:
    """Fast config that keeps every batch record in memory."""
    return make_config(diagnostic_mode=True)


@pytest.fixture
def alternating_source() -> AlternatingSource:
    return AlternatingSource()


@pytest.fixture
def ready_pool() -> EntropyPool:
    """A minimum-size pool that has absorbed exactly the extraction threshold."""
    pool = EntropyPool(capacity_bytes=1024)
    pool.add_entropy(np.ones(8192, dtype=np.uint8))
    return pool


@pytest.fixture
def ready_engine() -> Iterator[QuantumCryptoEngine]:
    """An engine whose pool was filled directly, with no collector running."""
    engine = QuantumCryptoEngine(make_config(pool_capacity_bytes=1024))
    rng = np.random.default_rng(11)
    engine.pool.add_entropy(rng.integers(0, 2, 8192))
    yield engine
    engine.close()
