"""AEAD cipher keyed from engine material.

Wire format::

    algorithm byte || 12-byte nonce || ciphertext + 16-byte tag

Algorithm bytes: ``0x01`` AES-256-GCM, ``0x02`` ChaCha20-Poly1305. Nonces
come from ``os.urandom``: pool extraction is deterministic for an unchanged
pool, so it must never be used for values that may not repeat.
"""

from __future__ import annotations

import os
from enum import Enum
from typing import TYPE_CHECKING

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from qcrypto_engine.exceptions import DecryptionError, InvalidKeyMaterialLengthError
from qcrypto_engine.kdf.secure import SecureBytes

if TYPE_CHECKING:
    from qcrypto_engine.engine import QuantumCryptoEngine

KEY_BYTES = 32
NONCE_BYTES = 12
TAG_BYTES = 16


class CipherAlgorithm(Enum):
    """Supported AEAD algorithms, valued by their wire-format byte."""

    AES256_GCM = 0x01
    CHACHA20_POLY1305 = 0x02

    @classmethod
    def from_header(cls, header: int) -> CipherAlgorithm:
        try:
            return cls(header)
        except ValueError as exc:
            raise DecryptionError(f"Unknown cipher algorithm byte: {header:#04x}") from exc


class QuantumCipher:
    """Authenticated encryption with a 32-byte key.

    Args:
        key: Raw key bytes, exactly 32.
        algorithm: AEAD algorithm used by :meth:`encrypt`.

    Raises:
        InvalidKeyMaterialLengthError: If *key* is not 32 bytes.
    """

    def __init__(
        self,
        key: bytes | bytearray,
        algorithm: CipherAlgorithm = CipherAlgorithm.AES256_GCM,
    ) -> None:
        if len(key) != KEY_BYTES:
            raise InvalidKeyMaterialLengthError(
                f"Cipher key must be {KEY_BYTES} bytes, got {len(key)}"
            )
        self._key = SecureBytes(key)
        self._algorithm = algorithm

    @classmethod
    def generate(
        cls,
        engine: QuantumCryptoEngine,
        algorithm: CipherAlgorithm = CipherAlgorithm.AES256_GCM,
    ) -> QuantumCipher:
        """Create a cipher with a fresh key from *engine*'s pool."""
        return cls(engine.extract_key_material(KEY_BYTES), algorithm)

    @property
    def algorithm(self) -> CipherAlgorithm:
        return self._algorithm

    def export_key(self) -> bytes:
        return bytes(self._key)

    def _aead(self, algorithm: CipherAlgorithm) -> AESGCM | ChaCha20Poly1305:
        key = bytes(self._key)
        if algorithm is CipherAlgorithm.AES256_GCM:
            return AESGCM(key)
        return ChaCha20Poly1305(key)

    def encrypt(self, plaintext: bytes, associated_data: bytes | None = None) -> bytes:
        nonce = os.urandom(NONCE_BYTES)
        body = self._aead(self._algorithm).encrypt(nonce, plaintext, associated_data)
        return bytes([self._algorithm.value]) + nonce + body

    def decrypt(self, data: bytes, associated_data: bytes | None = None) -> bytes:
        """Decrypt a message produced by :meth:`encrypt`.

        The algorithm is taken from the header byte, so a cipher configured
        for AES-GCM can still open a ChaCha20-Poly1305 message under the same
        key.

        Raises:
            DecryptionError: On a malformed message, an unknown algorithm
                byte, or an authentication failure.
        """
        if len(data) < 1 + NONCE_BYTES + TAG_BYTES:
            raise DecryptionError(f"Ciphertext too short ({len(data)} bytes)")
        algorithm = CipherAlgorithm.from_header(data[0])
        nonce = data[1 : 1 + NONCE_BYTES]
        try:
            return self._aead(algorithm).decrypt(nonce, data[1 + NONCE_BYTES :], associated_data)
        except InvalidTag as exc:
            raise DecryptionError("Ciphertext failed authentication") from exc

    def wipe(self) -> None:
        """Zero the held key."""
        self._key.wipe()
