"""Abstract base class for all entropy sources.

Every source, whether a camera, a microphone, a remote sensor server, the
OS CSPRNG or a test mock, implements this interface. The collector only
depends on the synchronous, possibly blocking ``sample()`` contract, with
failures signalled by raising rather than by returning short batches.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import numpy as np


class EntropySource(ABC):
    """Abstract base for all entropy sources.

    Subclasses must implement ``name``, ``is_available``, ``sample()`` and
    ``close()``. ``health_check()`` has a default implementation.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable source identifier (e.g., ``'system'``)."""

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Whether the source can currently provide bits."""

    @abstractmethod
    def sample(self, num_bits: int) -> np.ndarray:
        """Return exactly *num_bits* raw bits.

        May block for as long as the underlying device needs; the collector
        does not enforce a timeout on this call.

        Args:
            num_bits: Number of bits requested.

        Returns:
            ``uint8`` array of 0/1 values of length *num_bits*.

        Raises:
            SourceFailureError: If the source cannot deliver the batch.
        """

    @abstractmethod
    def close(self) -> None:
        """Release resources (devices, channels, file handles)."""

    def health_check(self) -> dict[str, Any]:
        """Return a status dictionary for this source.

        Returns:
            Dictionary with at least ``'source'`` and ``'healthy'`` keys.
        """
        return {"source": self.name, "healthy": self.is_available}
