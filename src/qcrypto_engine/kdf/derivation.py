"""Extract-then-expand key derivation over SHA3-512.

The *extract* step is the pool itself: 32 bytes of pool output (or a
caller-supplied master key) form the input keying material. The *expand*
step hashes that material with a purpose label:

- ``output_len <= 64``: ``SHA3-512(material || purpose || output_len)``
  truncated to ``output_len``.
- longer outputs: ``SHA3-512(material || purpose || counter)`` for
  ``counter = 0, 1, 2, ...`` concatenated and truncated.

Integers are encoded as unsigned 64-bit little-endian. Expansion is
bit-exact reproducible for identical inputs, which is what makes
``derive_subkey`` usable for deterministic subkey hierarchies.
"""

from __future__ import annotations

import hashlib
import struct
from enum import Enum
from typing import TYPE_CHECKING

from qcrypto_engine.exceptions import InvalidKeyMaterialLengthError
from qcrypto_engine.kdf.secure import SecureBytes

if TYPE_CHECKING:
    from qcrypto_engine.engine import QuantumCryptoEngine

# Native width of SHA3-512.
HASH_WIDTH = 64

# Pool material pulled per derive_key() call.
SEED_BYTES = 32


class PasswordCharset(Enum):
    """Character sets available to :meth:`KeyDerivation.generate_password`."""

    ALPHANUMERIC = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"
    ALPHANUMERIC_SYMBOLS = (
        "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"
        "!@#$%^&*()-_=+[]{}|;:,.<>?"
    )
    HEX = "0123456789abcdef"
    BASE64 = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"

    @property
    def chars(self) -> str:
        return self.value


def _u64(value: int) -> bytes:
    return struct.pack("<Q", value)


def expand(material: bytes | bytearray | memoryview, purpose: bytes, output_len: int) -> bytes:
    """Expand keying material into *output_len* bytes bound to *purpose*.

    Args:
        material: Input keying material.
        purpose: Domain-separation label.
        output_len: Number of output bytes, at least 1.

    Returns:
        Exactly *output_len* bytes.

    Raises:
        InvalidKeyMaterialLengthError: If *output_len* is not positive.
    """
    if output_len <= 0:
        raise InvalidKeyMaterialLengthError(f"Output length must be positive, got {output_len}")

    if output_len <= HASH_WIDTH:
        hasher = hashlib.sha3_512()
        hasher.update(material)
        hasher.update(purpose)
        hasher.update(_u64(output_len))
        return hasher.digest()[:output_len]

    output = bytearray()
    counter = 0
    while len(output) < output_len:
        hasher = hashlib.sha3_512()
        hasher.update(material)
        hasher.update(purpose)
        hasher.update(_u64(counter))
        output.extend(hasher.digest()[: output_len - len(output)])
        counter += 1
    return bytes(output)


class KeyDerivation:
    """Derive keys, subkeys and passwords from an engine's pool.

    Args:
        engine: Source of pool material (``extract_key_material``).
    """

    def __init__(self, engine: QuantumCryptoEngine) -> None:
        self._engine = engine

    def _pool_material(self, num_bytes: int) -> SecureBytes:
        return SecureBytes(self._engine.extract_key_material(num_bytes))

    def derive_key(self, purpose: bytes, output_len: int) -> bytes:
        """Derive fresh key material from the pool.

        Two calls differ whenever the pool absorbed new entropy in between.

        Raises:
            InsufficientEntropyError: If the pool is not ready.
            InvalidKeyMaterialLengthError: If *output_len* is not positive.
        """
        if output_len <= 0:
            raise InvalidKeyMaterialLengthError(f"Output length must be positive, got {output_len}")
        with self._pool_material(SEED_BYTES) as seed:
            return expand(seed.view(), purpose, output_len)

    def derive_subkey(self, master_key: bytes, purpose: bytes, output_len: int) -> bytes:
        """Deterministically derive a subkey from a caller-supplied master key.

        Does not touch the pool, so it keeps working when collection has
        halted.

        Raises:
            InvalidKeyMaterialLengthError: If *master_key* is empty or
                *output_len* is not positive.
        """
        if not master_key:
            raise InvalidKeyMaterialLengthError("Master key must not be empty")
        return expand(master_key, purpose, output_len)

    def generate_password(
        self,
        length: int,
        charset: PasswordCharset = PasswordCharset.ALPHANUMERIC,
    ) -> str:
        """Generate a password of *length* characters from *charset*.

        Pulls ``min(2 * length, 64)`` bytes of pool material, hashes it once
        (counter-mode for passwords longer than 64 characters), and maps
        each output byte modulo the charset size.

        Raises:
            InsufficientEntropyError: If the pool is not ready.
            InvalidKeyMaterialLengthError: If *length* is not positive.
        """
        if length <= 0:
            raise InvalidKeyMaterialLengthError(f"Password length must be positive, got {length}")
        chars = charset.chars
        purpose = b"password:" + charset.name.encode("ascii")
        with self._pool_material(min(2 * length, HASH_WIDTH)) as material:
            with SecureBytes(expand(material.view(), purpose, length)) as digest:
                return "".join(chars[b % len(chars)] for b in digest.view())
