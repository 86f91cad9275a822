"""Configurable mock entropy source for testing and bias simulation.

Draws Bernoulli bits with a configurable probability of a one, allowing
deterministic tests (via seed) and controlled bias experiments against the
health monitor and the debiasers.
"""

from __future__ import annotations

import numpy as np

from qcrypto_engine.entropy.base import EntropySource
from qcrypto_engine.entropy.registry import register_entropy_source


@register_entropy_source("mock_bernoulli")
class MockBernoulliSource(EntropySource):
    """Seeded Bernoulli bit source.

    Usage:
        - **Healthy source**: ``p_one=0.5`` scores close to 1.0 per bit.
        - **Biased sensor**: ``p_one=0.9`` scores about 0.47 and is
          eventually rejected by the monitor.
        - **Stuck sensor**: ``p_one=1.0`` produces all ones.

    Args:
        p_one: Probability that each bit is 1.
        seed: Optional RNG seed for reproducible output.
    """

    def __init__(self, p_one: float = 0.5, seed: int | None = None) -> None:
        if not 0.0 <= p_one <= 1.0:
            raise ValueError(f"p_one must be in [0, 1], got {p_one}")
        self._p_one = p_one
        self._rng = np.random.default_rng(seed)

    @property
    def name(self) -> str:
        return "mock_bernoulli"

    @property
    def is_available(self) -> bool:
        return True

    @property
    def p_one(self) -> float:
        return self._p_one

    def sample(self, num_bits: int) -> np.ndarray:
        return (self._rng.random(num_bits) < self._p_one).astype(np.uint8)

    def close(self) -> None:
        """No-op, no resources to release."""
