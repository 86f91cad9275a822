"""Cryptographic consumers of engine key material.

Requires the ``cryptography`` package (``pip install 'qcrypto-engine[crypto]'``).
"""

from qcrypto_engine.consumers.cipher import CipherAlgorithm, QuantumCipher
from qcrypto_engine.consumers.signer import QuantumSigner

__all__ = [
    "CipherAlgorithm",
    "QuantumCipher",
    "QuantumSigner",
]
