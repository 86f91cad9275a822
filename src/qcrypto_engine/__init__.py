"""qcrypto-engine: condition raw physical noise into extractable key material.

A background collector samples an entropy source (system RNG, remote camera
or microphone capture, or any registered plugin), scores each batch with a
sliding-window health monitor, and mixes admitted batches into an XOR pool.
Consumers extract up to 64 bytes at a time through a SHA3-512 digest of the
pool, or derive keys and passwords through :mod:`qcrypto_engine.kdf`.
"""

from __future__ import annotations

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("qcrypto-engine")
except PackageNotFoundError:
    __version__ = "0.0.0"

from qcrypto_engine.collector import CollectorState, EntropyCollector
from qcrypto_engine.config import EngineConfig, load_config
from qcrypto_engine.engine import EntropyStats, QuantumCryptoEngine, build_entropy_source
from qcrypto_engine.exceptions import (
    AlreadyRunningError,
    CollectionHaltedError,
    ConfigValidationError,
    DecryptionError,
    InsufficientEntropyError,
    InvalidKeyMaterialLengthError,
    NotRunningError,
    QCryptoEngineError,
    RequestTooLargeError,
    SignatureVerificationError,
    SourceFailureError,
)
from qcrypto_engine.health.monitor import HealthMonitor
from qcrypto_engine.health.types import HealthStatus
from qcrypto_engine.kdf import KeyDerivation, PasswordCharset, SecureBytes
from qcrypto_engine.pool.entropy_pool import EntropyPool

__all__ = [
    "AlreadyRunningError",
    "CollectionHaltedError",
    "CollectorState",
    "ConfigValidationError",
    "DecryptionError",
    "EngineConfig",
    "EntropyCollector",
    "EntropyPool",
    "EntropyStats",
    "HealthMonitor",
    "HealthStatus",
    "InsufficientEntropyError",
    "InvalidKeyMaterialLengthError",
    "KeyDerivation",
    "NotRunningError",
    "PasswordCharset",
    "QCryptoEngineError",
    "QuantumCryptoEngine",
    "RequestTooLargeError",
    "SecureBytes",
    "SignatureVerificationError",
    "SourceFailureError",
    "__version__",
    "build_entropy_source",
    "load_config",
]
