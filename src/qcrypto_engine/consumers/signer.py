"""Ed25519 signer seeded from engine material."""

from __future__ import annotations

from typing import TYPE_CHECKING

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from qcrypto_engine.exceptions import InvalidKeyMaterialLengthError, SignatureVerificationError
from qcrypto_engine.kdf.secure import SecureBytes

if TYPE_CHECKING:
    from qcrypto_engine.engine import QuantumCryptoEngine

SEED_BYTES = 32
PUBLIC_KEY_BYTES = 32

_RAW = serialization.Encoding.Raw


class QuantumSigner:
    """Generate, sign with, verify, import and export Ed25519 keys.

    Args:
        engine: Provides the 32-byte seed for :meth:`generate_keypair`.
    """

    def __init__(self, engine: QuantumCryptoEngine) -> None:
        self._engine = engine

    def generate_keypair(self) -> tuple[Ed25519PrivateKey, Ed25519PublicKey]:
        """Create a key pair from 32 bytes of pool material.

        Raises:
            InsufficientEntropyError: If the pool is not ready.
        """
        with SecureBytes(self._engine.extract_key_material(SEED_BYTES)) as seed:
            if len(seed) != SEED_BYTES:
                raise InvalidKeyMaterialLengthError("Invalid key material length")
            signing_key = Ed25519PrivateKey.from_private_bytes(bytes(seed))
        return signing_key, signing_key.public_key()

    @staticmethod
    def sign(message: bytes, signing_key: Ed25519PrivateKey) -> bytes:
        return signing_key.sign(message)

    @staticmethod
    def verify(message: bytes, signature: bytes, verifying_key: Ed25519PublicKey) -> None:
        """Verify *signature* over *message*.

        Raises:
            SignatureVerificationError: If the signature does not verify.
        """
        try:
            verifying_key.verify(signature, message)
        except InvalidSignature as exc:
            raise SignatureVerificationError("Signature verification failed") from exc

    @staticmethod
    def export_signing_key(key: Ed25519PrivateKey) -> bytes:
        return key.private_bytes(_RAW, serialization.PrivateFormat.Raw, serialization.NoEncryption())

    @staticmethod
    def export_verifying_key(key: Ed25519PublicKey) -> bytes:
        return key.public_bytes(_RAW, serialization.PublicFormat.Raw)

    @staticmethod
    def import_signing_key(data: bytes) -> Ed25519PrivateKey:
        if len(data) != SEED_BYTES:
            raise InvalidKeyMaterialLengthError(
                f"Invalid signing key length: expected {SEED_BYTES}, got {len(data)}"
            )
        return Ed25519PrivateKey.from_private_bytes(data)

    @staticmethod
    def import_verifying_key(data: bytes) -> Ed25519PublicKey:
        if len(data) != PUBLIC_KEY_BYTES:
            raise InvalidKeyMaterialLengthError(
                f"Invalid verifying key length: expected {PUBLIC_KEY_BYTES}, got {len(data)}"
            )
        return Ed25519PublicKey.from_public_bytes(data)
