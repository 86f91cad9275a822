"""Bit-sequence helpers shared by the pool, monitor and sources.

A bit sequence is a one-dimensional ``uint8`` numpy array holding 0/1
values. Packing is **least-significant-bit first**: bit ``i`` of each
8-bit chunk sets ``1 << i`` in the output byte, and an incomplete trailing
chunk is padded with zero bits.
"""

from __future__ import annotations

import hashlib
import math
from collections.abc import Iterable

import numpy as np

BitArray = np.ndarray


def as_bits(bits: Iterable[int] | np.ndarray) -> BitArray:
    """Normalise *bits* into a ``uint8`` array of 0/1 values.

    Only the value ``1`` counts as a set bit; anything else is treated as 0.

    Args:
        bits: Any sequence or array of integers.

    Returns:
        A new one-dimensional ``uint8`` array.
    """
    arr = np.asarray(bits if isinstance(bits, np.ndarray) else list(bits))
    return (arr.reshape(-1) == 1).astype(np.uint8)


def bits_to_bytes(bits: Iterable[int] | np.ndarray) -> bytes:
    """Pack a bit sequence into bytes, LSB first, zero-padding the tail.

    Args:
        bits: Sequence of 0/1 values.

    Returns:
        ``ceil(len(bits) / 8)`` packed bytes.
    """
    arr = as_bits(bits)
    if arr.size == 0:
        return b""
    return np.packbits(arr, bitorder="little").tobytes()


def bytes_to_bits(data: bytes) -> BitArray:
    """Unpack bytes into a bit sequence, LSB first.

    Args:
        data: Raw bytes.

    Returns:
        ``uint8`` array of length ``8 * len(data)``.
    """
    return np.unpackbits(np.frombuffer(data, dtype=np.uint8), bitorder="little")


def lsb_bits(samples: bytes | np.ndarray) -> BitArray:
    """Take the least significant bit of every raw sensor sample.

    This is the extraction rule for camera pixel bytes and microphone
    PCM samples, where only the lowest bit carries sensor noise.

    Args:
        samples: Raw bytes or an integer array of samples.

    Returns:
        One bit per input sample.
    """
    if isinstance(samples, (bytes, bytearray, memoryview)):
        arr = np.frombuffer(bytes(samples), dtype=np.uint8)
    else:
        arr = np.asarray(samples)
    return (arr.reshape(-1) & 1).astype(np.uint8)


def shannon_entropy(bits: Iterable[int] | np.ndarray) -> float:
    """Binary Shannon entropy of the empirical bit frequency.

    ``H = -p0*log2(p0) - p1*log2(p1)``; zero-probability terms contribute 0.

    Args:
        bits: Sequence of 0/1 values.

    Returns:
        Entropy per bit in ``[0, 1]``; ``0.0`` for an empty sequence.
    """
    arr = as_bits(bits)
    n = arr.size
    if n == 0:
        return 0.0
    ones = int(arr.sum())
    entropy = 0.0
    for count in (n - ones, ones):
        if count:
            p = count / n
            entropy -= p * math.log2(p)
    return entropy


def xor_bits(first: np.ndarray, second: np.ndarray) -> BitArray:
    """Bitwise XOR of two bit sequences, truncated to the shorter one."""
    a = as_bits(first)
    b = as_bits(second)
    n = min(a.size, b.size)
    return np.bitwise_xor(a[:n], b[:n])


def hash_condition(bits: Iterable[int] | np.ndarray) -> BitArray:
    """Whiten a bit sequence through SHA3-256.

    Args:
        bits: Sequence of 0/1 values.

    Returns:
        256 output bits, or an empty array for empty input.
    """
    arr = as_bits(bits)
    if arr.size == 0:
        return np.zeros(0, dtype=np.uint8)
    digest = hashlib.sha3_256(bits_to_bytes(arr)).digest()
    return bytes_to_bits(digest)
