"""Collection logging subsystem for qcrypto-engine.

Provides immutable per-batch records and a configurable logger that
supports none/summary/full verbosity and in-memory diagnostic mode.
"""

from qcrypto_engine.logging.logger import CollectionLogger
from qcrypto_engine.logging.types import BatchRecord

__all__ = [
    "BatchRecord",
    "CollectionLogger",
]
