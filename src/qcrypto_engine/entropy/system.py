"""System entropy source using ``os.urandom()``.

Always available and cryptographically secure. Useful as a baseline source,
as the second half of a hybrid source, and in tests that need a source
which never fails.
"""

from __future__ import annotations

import os

import numpy as np

from qcrypto_engine.conditioning.bits import bytes_to_bits
from qcrypto_engine.entropy.base import EntropySource
from qcrypto_engine.entropy.registry import register_entropy_source


@register_entropy_source("system")
class SystemEntropySource(EntropySource):
    """``os.urandom()`` wrapper producing bit batches."""

    @property
    def name(self) -> str:
        return "system"

    @property
    def is_available(self) -> bool:
        return True

    def sample(self, num_bits: int) -> np.ndarray:
        """Return *num_bits* bits unpacked from ``os.urandom()``."""
        raw = os.urandom((num_bits + 7) // 8)
        return bytes_to_bits(raw)[:num_bits]

    def close(self) -> None:
        """No-op, no resources to release."""
