"""Bit conditioning for qcrypto-engine.

Packing helpers, the Shannon batch score, and the debiasers applied to
admitted batches before they reach the pool.
"""

from qcrypto_engine.conditioning.base import Debiaser
from qcrypto_engine.conditioning.bits import (
    as_bits,
    bits_to_bytes,
    bytes_to_bits,
    hash_condition,
    lsb_bits,
    shannon_entropy,
    xor_bits,
)
from qcrypto_engine.conditioning.debiasers import (
    HashDebiaser,
    PassThroughDebiaser,
    VonNeumannDebiaser,
    von_neumann_debias,
)
from qcrypto_engine.conditioning.registry import DebiaserRegistry

__all__ = [
    "Debiaser",
    "DebiaserRegistry",
    "HashDebiaser",
    "PassThroughDebiaser",
    "VonNeumannDebiaser",
    "as_bits",
    "bits_to_bytes",
    "bytes_to_bits",
    "hash_condition",
    "lsb_bits",
    "shannon_entropy",
    "von_neumann_debias",
    "xor_bits",
]
