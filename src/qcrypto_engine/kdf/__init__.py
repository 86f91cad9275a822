"""Key derivation and secret-buffer handling."""

from qcrypto_engine.kdf.derivation import KeyDerivation, PasswordCharset, expand
from qcrypto_engine.kdf.secure import SecureBytes

__all__ = [
    "KeyDerivation",
    "PasswordCharset",
    "SecureBytes",
    "expand",
]
