"""Abstract base class for bit debiasers.

A debiaser is a stateless transform applied to a batch after it has been
scored and admitted, just before it is mixed into the pool.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import numpy as np


class Debiaser(ABC):
    """Abstract base for bit debiasing transforms."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry identifier (e.g., ``'von_neumann'``)."""

    @abstractmethod
    def debias(self, bits: np.ndarray) -> np.ndarray:
        """Return a conditioned bit sequence derived from *bits*.

        Args:
            bits: Raw 0/1 ``uint8`` array.

        Returns:
            A new 0/1 ``uint8`` array. Must be deterministic and must not
            modify the input.
        """
