"""Entropy pool and its reader/writer lock."""

from qcrypto_engine.pool.entropy_pool import EntropyPool
from qcrypto_engine.pool.locks import ReadWriteLock

__all__ = [
    "EntropyPool",
    "ReadWriteLock",
]
