"""Exception hierarchy for qcrypto-engine.

All exceptions derive from QCryptoEngineError, enabling broad catch patterns
at the application boundary while allowing fine-grained handling internally.
"""


class QCryptoEngineError(Exception):
    """Base exception for all qcrypto-engine errors."""


class InsufficientEntropyError(QCryptoEngineError):
    """The pool has not yet absorbed the minimum number of bits.

    Recoverable by waiting for the collector to admit more batches.
    """


class RequestTooLargeError(QCryptoEngineError):
    """A single extraction asked for more bytes than the per-call ceiling.

    The caller must split the request into several smaller extractions.
    """


class SourceFailureError(QCryptoEngineError):
    """An entropy source could not deliver a batch.

    Absorbed by the collector loop and retried after a back-off, until the
    consecutive-failure ceiling is reached.
    """


class CollectionHaltedError(QCryptoEngineError):
    """The collector's circuit breaker tripped and collection has stopped.

    Attributes:
        failures: Number of consecutive failures that tripped the breaker.
        last_error: The source failure that ended the run, if any.
    """

    def __init__(
        self,
        message: str,
        failures: int = 0,
        last_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.failures = failures
        self.last_error = last_error


class AlreadyRunningError(QCryptoEngineError):
    """Collection was started while a collector loop is already active."""


class NotRunningError(QCryptoEngineError):
    """An operation requires an active collector loop but none is running."""


class InvalidKeyMaterialLengthError(QCryptoEngineError):
    """Derivation or key import was given a malformed byte length."""


class ConfigValidationError(QCryptoEngineError):
    """Configuration field validation failed."""


class DecryptionError(QCryptoEngineError):
    """Ciphertext could not be parsed or failed authentication."""


class SignatureVerificationError(QCryptoEngineError):
    """A signature did not verify against the message and public key."""
