"""Fixed-capacity XOR mixing pool with hashed extraction.

Conditioned bits are packed into bytes (LSB first, see
:mod:`qcrypto_engine.conditioning.bits`) and XOR-ed into a ring buffer at a
moving write cursor. Extraction hashes the whole buffer with SHA3-512 together
with the extraction counter and the cursor, and truncates the digest.

Extraction is a pure function of pool state unless
``advance_extraction_counter`` is enabled: two calls with no ``add_entropy``
in between return identical bytes. Everything built on extraction inherits
this. ``KeyDerivation.derive_key``, ``generate_password``,
``QuantumCipher.generate`` and ``QuantumSigner.generate_keypair`` repeat
their output while the pool is unchanged, for instance after collection has
halted. The purpose label only separates uses from each other; it is not a
per-call salt. Callers that need distinct outputs must wait for new entropy
or enable the advancing counter.
"""

from __future__ import annotations

import hashlib
import logging
import struct
from typing import TYPE_CHECKING

import numpy as np

from qcrypto_engine.conditioning.bits import as_bits, bits_to_bytes
from qcrypto_engine.config import MAX_EXTRACT_BYTES, MIN_POOL_CAPACITY_BYTES
from qcrypto_engine.exceptions import (
    ConfigValidationError,
    InsufficientEntropyError,
    InvalidKeyMaterialLengthError,
    RequestTooLargeError,
)
from qcrypto_engine.pool.locks import ReadWriteLock

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger("qcrypto_engine")

_U64_MASK = (1 << 64) - 1


class EntropyPool:
    """Thread-safe XOR mixing pool.

    ``add_entropy`` and ``wipe`` take the writer side of the pool's
    reader/writer lock; ``extract`` and the statistics take the reader side.

    Args:
        capacity_bytes: Buffer size; at least 1024 bytes.
        min_bits_before_extract: Absorbed bits required before ``extract``
            succeeds.
        max_extract_bytes: Per-call extraction ceiling (at most 64).
        advance_extraction_counter: Increment the counter after every
            successful extraction so repeated calls differ.

    Raises:
        ConfigValidationError: If the capacity or ceiling is out of range.
    """

    def __init__(
        self,
        capacity_bytes: int,
        min_bits_before_extract: int = 8192,
        max_extract_bytes: int = MAX_EXTRACT_BYTES,
        advance_extraction_counter: bool = False,
    ) -> None:
        if capacity_bytes < MIN_POOL_CAPACITY_BYTES:
            raise ConfigValidationError(
                f"Entropy pool must be at least {MIN_POOL_CAPACITY_BYTES} bytes, "
                f"got {capacity_bytes}"
            )
        if not 1 <= max_extract_bytes <= MAX_EXTRACT_BYTES:
            raise ConfigValidationError(
                f"max_extract_bytes must be in [1, {MAX_EXTRACT_BYTES}], got {max_extract_bytes}"
            )
        self._buffer = np.zeros(capacity_bytes, dtype=np.uint8)
        self._capacity = capacity_bytes
        self._write_cursor = 0
        self._extraction_counter = 0
        self._total_bits_absorbed = 0
        self._min_bits = min_bits_before_extract
        self._max_extract = max_extract_bytes
        self._advance_counter = advance_extraction_counter
        self._lock = ReadWriteLock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def write_cursor(self) -> int:
        with self._lock.read_locked():
            return self._write_cursor

    @property
    def extraction_counter(self) -> int:
        with self._lock.read_locked():
            return self._extraction_counter

    @property
    def total_bits_absorbed(self) -> int:
        with self._lock.read_locked():
            return self._total_bits_absorbed

    @property
    def max_extract_bytes(self) -> int:
        return self._max_extract

    @property
    def min_bits_before_extract(self) -> int:
        return self._min_bits

    @property
    def is_ready(self) -> bool:
        """Whether enough bits have been absorbed for ``extract`` to succeed."""
        return self.total_bits_absorbed >= self._min_bits

    def add_entropy(self, bits: Iterable[int] | np.ndarray) -> None:
        """XOR a bit sequence into the buffer at the write cursor.

        The bit count credited to ``total_bits_absorbed`` is the original
        length, not the zero-padded packed length.

        Args:
            bits: Sequence of 0/1 values.
        """
        arr = as_bits(bits)
        if arr.size == 0:
            return
        data = np.frombuffer(bits_to_bytes(arr), dtype=np.uint8)

        with self._lock.write_locked():
            positions = (self._write_cursor + np.arange(data.size)) % self._capacity
            # ufunc.at applies repeated indices sequentially when a batch
            # is longer than the buffer and wraps over itself.
            np.bitwise_xor.at(self._buffer, positions, data)
            self._write_cursor = (self._write_cursor + data.size) % self._capacity
            self._total_bits_absorbed = (self._total_bits_absorbed + arr.size) & _U64_MASK

    def extract(self, n: int) -> bytes:
        """Return *n* bytes derived from the current pool state.

        Args:
            n: Number of bytes, ``0 <= n <= max_extract_bytes``.

        Returns:
            ``SHA3-512(buffer || counter || cursor)[:n]``.

        Raises:
            RequestTooLargeError: If *n* exceeds the per-call ceiling.
            InsufficientEntropyError: If too few bits have been absorbed.
            InvalidKeyMaterialLengthError: If *n* is negative.
        """
        if n < 0:
            raise InvalidKeyMaterialLengthError(f"Cannot extract a negative byte count ({n})")
        if n > self._max_extract:
            raise RequestTooLargeError(
                f"Cannot extract more than {self._max_extract} bytes per call (requested {n})"
            )

        if self._advance_counter:
            with self._lock.write_locked():
                digest = self._digest_locked()
                self._extraction_counter = (self._extraction_counter + 1) & _U64_MASK
        else:
            with self._lock.read_locked():
                digest = self._digest_locked()
        return digest[:n]

    def _digest_locked(self) -> bytes:
        if self._total_bits_absorbed < self._min_bits:
            raise InsufficientEntropyError(
                f"Insufficient entropy collected ({self._total_bits_absorbed} of "
                f"{self._min_bits} bits). Wait for more data"
            )
        hasher = hashlib.sha3_512()
        hasher.update(self._buffer.tobytes())
        hasher.update(struct.pack("<Q", self._extraction_counter))
        hasher.update(struct.pack("<Q", self._write_cursor))
        return hasher.digest()

    def available_entropy(self) -> int:
        """Number of non-zero bytes in the buffer.

        A coarse utilisation metric, not a quality measure.
        """
        with self._lock.read_locked():
            return int(np.count_nonzero(self._buffer))

    def usage(self) -> tuple[int, int]:
        """Non-zero byte count and total absorbed bits, read under one lock."""
        with self._lock.read_locked():
            return int(np.count_nonzero(self._buffer)), self._total_bits_absorbed

    def wipe(self) -> None:
        """Zero the buffer and reset the cursor and counters."""
        with self._lock.write_locked():
            self._buffer.fill(0)
            self._write_cursor = 0
            self._extraction_counter = 0
            self._total_bits_absorbed = 0
        logger.debug("Entropy pool wiped (%d bytes)", self._capacity)

    def __repr__(self) -> str:
        return (
            f"EntropyPool(capacity={self._capacity}, "
            f"total_bits_absorbed={self.total_bits_absorbed})"
        )
