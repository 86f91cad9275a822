"""Configuration system for qcrypto-engine.

Uses pydantic-settings for declarative, layered configuration:
init kwargs -> environment variables (QCE_*) -> .env file -> field defaults.

:func:`load_config` is the preferred entry point: it builds an
:class:`EngineConfig` and converts pydantic validation failures into
:class:`~qcrypto_engine.exceptions.ConfigValidationError`.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from qcrypto_engine.exceptions import ConfigValidationError

# Smallest pool the engine accepts.
MIN_POOL_CAPACITY_BYTES = 1024

# Hard ceiling on a single extraction; one SHA3-512 digest.
MAX_EXTRACT_BYTES = 64

_LOG_LEVELS: frozenset[str] = frozenset({"none", "summary", "full"})
_REMOTE_BIT_MODES: frozenset[str] = frozenset({"unpack", "lsb"})


class EngineConfig(BaseSettings):
    """Configuration for qcrypto-engine.

    Resolution order: init kwargs -> env vars (QCE_*) -> .env file -> defaults.

    Fields are grouped by the component that consumes them:
    - **Pool**: capacity, extraction threshold and ceiling.
    - **Health**: window size and status thresholds.
    - **Collector**: batch size, circuit breaker and timing.
    - **Sources**: which registered sources to build, remote settings.
    - **Logging**: per-batch verbosity and diagnostic mode.
    """

    model_config = SettingsConfigDict(
        env_prefix="QCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Pool ---

    pool_capacity_bytes: int = Field(
        default=8192,
        ge=MIN_POOL_CAPACITY_BYTES,
        description="Size of the XOR mixing buffer in bytes",
    )
    min_bits_before_extract: int = Field(
        default=8192,
        ge=0,
        description="Bits that must be absorbed before extraction is allowed",
    )
    max_extract_bytes: int = Field(
        default=MAX_EXTRACT_BYTES,
        ge=1,
        le=MAX_EXTRACT_BYTES,
        description="Largest number of bytes a single extraction may return",
    )
    advance_extraction_counter: bool = Field(
        default=False,
        description="Advance the domain-separation counter on every extraction",
    )

    # --- Health monitor ---

    window_size: int = Field(
        default=100,
        gt=0,
        description="Number of recent batch scores kept in the sliding window",
    )
    min_samples: int = Field(
        default=10,
        ge=0,
        description="Samples required before the monitor can report unhealthy",
    )
    excellent_threshold: float = Field(
        default=0.95,
        ge=0.0,
        le=1.0,
        description="Average score at or above which status is Excellent",
    )
    healthy_threshold: float = Field(
        default=0.85,
        ge=0.0,
        le=1.0,
        description="Average score at or above which batches are admitted",
    )
    degraded_threshold: float = Field(
        default=0.70,
        ge=0.0,
        le=1.0,
        description="Average score at or above which status is Degraded",
    )

    # --- Collector ---

    batch_bits: int = Field(
        default=2048,
        gt=0,
        description="Raw bits requested from the source per cycle",
    )
    max_consecutive_failures: int = Field(
        default=10,
        gt=0,
        description="Consecutive source failures before collection halts",
    )
    cycle_interval_s: float = Field(
        default=0.1,
        ge=0.0,
        description="Pause between collector cycles in seconds",
    )
    failure_backoff_s: float = Field(
        default=2.0,
        ge=0.0,
        description="Extra pause after a failed batch in seconds",
    )
    join_timeout_s: float = Field(
        default=10.0,
        gt=0.0,
        description="How long stop() waits for the collector thread to exit",
    )
    debiaser_type: str = Field(
        default="none",
        description="Debiaser applied to admitted batches: 'none', 'von_neumann', 'sha3'",
    )

    # --- Sources ---

    entropy_source_type: str = Field(
        default="system",
        description="Primary entropy source identifier",
    )
    secondary_source_type: str = Field(
        default="",
        description="Second source XOR-combined with the primary (empty disables)",
    )
    remote_server_address: str = Field(
        default="localhost:50051",
        description="gRPC sensor server address (host:port or unix:///path)",
    )
    remote_method_path: str = Field(
        default="/qr_entropy.EntropyService/GetEntropy",
        description="gRPC method path for the unary sample RPC",
    )
    remote_timeout_ms: float = Field(
        default=5000.0,
        gt=0.0,
        description="gRPC call timeout in milliseconds",
    )
    remote_retry_count: int = Field(
        default=2,
        ge=0,
        description="Number of retries after a gRPC failure",
    )
    remote_bit_mode: str = Field(
        default="unpack",
        description="'unpack' uses every bit of each byte, 'lsb' one bit per sample",
    )

    # --- Logging ---

    log_level: str = Field(
        default="summary",
        description="Per-batch logging verbosity: 'none', 'summary', 'full'",
    )
    diagnostic_mode: bool = Field(
        default=False,
        description="Store all batch records in memory for analysis",
    )

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        if value not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}, got {value!r}")
        return value

    @field_validator("remote_bit_mode")
    @classmethod
    def _check_remote_bit_mode(cls, value: str) -> str:
        if value not in _REMOTE_BIT_MODES:
            raise ValueError(
                f"remote_bit_mode must be one of {sorted(_REMOTE_BIT_MODES)}, got {value!r}"
            )
        return value

    @model_validator(mode="after")
    def _check_threshold_order(self) -> EngineConfig:
        if not self.degraded_threshold <= self.healthy_threshold <= self.excellent_threshold:
            raise ValueError(
                "thresholds must satisfy degraded <= healthy <= excellent "
                f"(got {self.degraded_threshold}, {self.healthy_threshold}, "
                f"{self.excellent_threshold})"
            )
        return self


def load_config(**overrides: Any) -> EngineConfig:
    """Build an :class:`EngineConfig`, wrapping validation failures.

    Args:
        **overrides: Field values that take precedence over the environment.

    Returns:
        A validated configuration.

    Raises:
        ConfigValidationError: If any field fails validation.
    """
    try:
        return EngineConfig(**overrides)
    except ValidationError as exc:
        raise ConfigValidationError(f"Invalid engine configuration: {exc}") from exc
