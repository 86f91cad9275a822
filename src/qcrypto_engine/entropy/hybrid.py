"""Hybrid entropy source: XOR composition of two independent sources.

``HybridEntropySource`` draws a batch from each of its sources and combines
them bitwise. An attacker must control both sources to control the output,
but either source failing fails the whole batch: errors from either side
propagate unchanged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from qcrypto_engine.conditioning.bits import xor_bits
from qcrypto_engine.entropy.base import EntropySource
from qcrypto_engine.exceptions import SourceFailureError

if TYPE_CHECKING:
    import numpy as np


class HybridEntropySource(EntropySource):
    """Composition wrapper XOR-ing a primary and a secondary source.

    Args:
        primary: First source (e.g., a camera).
        secondary: Second, independent source (e.g., a microphone).
    """

    def __init__(self, primary: EntropySource, secondary: EntropySource) -> None:
        self._primary = primary
        self._secondary = secondary

    @property
    def name(self) -> str:
        """Return a compound name: ``'<primary>^<secondary>'``."""
        return f"{self._primary.name}^{self._secondary.name}"

    @property
    def is_available(self) -> bool:
        """``True`` only if both sources are available."""
        return self._primary.is_available and self._secondary.is_available

    def sample(self, num_bits: int) -> np.ndarray:
        """Sample both sources and XOR the batches.

        Raises:
            SourceFailureError: If either source fails or returns a short
                batch.
        """
        first = self._primary.sample(num_bits)
        second = self._secondary.sample(num_bits)
        if len(first) < num_bits or len(second) < num_bits:
            raise SourceFailureError(
                f"Hybrid source {self.name!r} got {len(first)}/{len(second)} bits, "
                f"needed {num_bits}"
            )
        return xor_bits(first[:num_bits], second[:num_bits])

    def close(self) -> None:
        """Close both sources."""
        self._primary.close()
        self._secondary.close()

    def health_check(self) -> dict[str, Any]:
        return {
            "source": self.name,
            "healthy": self.is_available,
            "primary": self._primary.health_check(),
            "secondary": self._secondary.health_check(),
        }
