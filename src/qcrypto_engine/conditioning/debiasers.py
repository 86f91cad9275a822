"""Built-in debiasers: pass-through, Von Neumann extraction, SHA3 whitening."""

from __future__ import annotations

import numpy as np

from qcrypto_engine.conditioning.base import Debiaser
from qcrypto_engine.conditioning.bits import as_bits, hash_condition
from qcrypto_engine.conditioning.registry import DebiaserRegistry


def von_neumann_debias(bits: np.ndarray) -> np.ndarray:
    """Von Neumann extraction over consecutive, non-overlapping pairs.

    For each pair ``(a, b)`` with ``a != b`` emit ``a``; equal pairs are
    discarded and a trailing odd bit is ignored. If nothing survives but the
    input was non-empty, the first input bit is emitted so that callers are
    never handed an empty batch. Inputs shorter than two bits are returned
    unchanged.

    Args:
        bits: Sequence of 0/1 values.

    Returns:
        At most ``len(bits) // 2`` bits (or one bit via the fallback).
    """
    arr = as_bits(bits)
    if arr.size < 2:
        return arr.copy()

    pairs = arr[: arr.size - arr.size % 2].reshape(-1, 2)
    result = pairs[pairs[:, 0] != pairs[:, 1], 0]
    if result.size == 0:
        return arr[:1].copy()
    return np.ascontiguousarray(result)


@DebiaserRegistry.register("none")
class PassThroughDebiaser(Debiaser):
    """Admit batches exactly as they were scored."""

    @property
    def name(self) -> str:
        return "none"

    def debias(self, bits: np.ndarray) -> np.ndarray:
        return as_bits(bits)


@DebiaserRegistry.register("von_neumann")
class VonNeumannDebiaser(Debiaser):
    """Removes first-order bias from independent bits at the cost of rate.

    A source emitting ones with probability ``p`` yields on average
    ``n * p * (1 - p)`` output bits from ``n`` input bits.
    """

    @property
    def name(self) -> str:
        return "von_neumann"

    def debias(self, bits: np.ndarray) -> np.ndarray:
        return von_neumann_debias(bits)


@DebiaserRegistry.register("sha3")
class HashDebiaser(Debiaser):
    """Compress the batch into 256 bits through SHA3-256."""

    @property
    def name(self) -> str:
        return "sha3"

    def debias(self, bits: np.ndarray) -> np.ndarray:
        return hash_condition(bits)
