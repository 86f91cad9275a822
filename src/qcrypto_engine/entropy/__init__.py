"""Entropy source subsystem for qcrypto-engine.

Re-exports the ABC, registry, and the built-in source implementations::

    from qcrypto_engine.entropy import EntropySource, EntropySourceRegistry
    from qcrypto_engine.entropy import SystemEntropySource, HybridEntropySource
"""

from qcrypto_engine.entropy.base import EntropySource
from qcrypto_engine.entropy.hybrid import HybridEntropySource
from qcrypto_engine.entropy.mock import MockBernoulliSource
from qcrypto_engine.entropy.registry import EntropySourceRegistry, register_entropy_source
from qcrypto_engine.entropy.remote import RemoteSensorSource
from qcrypto_engine.entropy.system import SystemEntropySource

__all__ = [
    "EntropySource",
    "EntropySourceRegistry",
    "HybridEntropySource",
    "MockBernoulliSource",
    "RemoteSensorSource",
    "SystemEntropySource",
    "register_entropy_source",
]
