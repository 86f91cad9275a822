"""Engine facade coordinating the pool, the monitor and the collector.

``QuantumCryptoEngine`` is the object cryptographic consumers hold on to.
It owns all shared state; there are no module-level globals. Closing the
engine (explicitly, or by leaving its ``with`` block) first stops and joins
the collector and then wipes the pool buffer.

Typical use::

    with QuantumCryptoEngine() as engine:
        engine.start("system")
        engine.wait_until_ready(timeout=5.0)
        key = engine.extract_key_material(32)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from qcrypto_engine.collector import CollectorState, EntropyCollector
from qcrypto_engine.config import EngineConfig, load_config
from qcrypto_engine.entropy.hybrid import HybridEntropySource
from qcrypto_engine.entropy.registry import EntropySourceRegistry
from qcrypto_engine.exceptions import AlreadyRunningError, NotRunningError
from qcrypto_engine.health.monitor import HealthMonitor
from qcrypto_engine.pool.entropy_pool import EntropyPool

if TYPE_CHECKING:
    from collections.abc import Callable

    from qcrypto_engine.entropy.base import EntropySource
    from qcrypto_engine.exceptions import CollectionHaltedError
    from qcrypto_engine.health.types import HealthStatus

logger = logging.getLogger("qcrypto_engine")


@dataclass(frozen=True, slots=True)
class EntropyStats:
    """Read-only snapshot of engine state.

    Attributes:
        available_bytes: Non-zero bytes in the pool buffer.
        pool_capacity: Pool buffer size in bytes.
        health_status: Current monitor classification.
        average_entropy: Window average of batch scores.
        total_bits_absorbed: Bits credited to the pool so far.
        sample_count: Scores currently in the monitor window.
        collector_state: Collector lifecycle state.
    """

    available_bytes: int
    pool_capacity: int
    health_status: HealthStatus
    average_entropy: float
    total_bits_absorbed: int
    sample_count: int
    collector_state: CollectorState


def build_entropy_source(config: EngineConfig) -> EntropySource:
    """Build the configured source, XOR-combined with a secondary if set.

    Args:
        config: Provides ``entropy_source_type`` and ``secondary_source_type``.

    Returns:
        The primary source, or a :class:`HybridEntropySource` when a
        secondary source is configured.

    Raises:
        KeyError: If a source name is not registered.
    """
    primary = EntropySourceRegistry.create(config.entropy_source_type, config)
    if not config.secondary_source_type:
        return primary
    secondary = EntropySourceRegistry.create(config.secondary_source_type, config)
    return HybridEntropySource(primary, secondary)


class QuantumCryptoEngine:
    """Shared-state facade over pool, monitor and collector.

    Args:
        config: Engine configuration. Loaded from the environment if omitted.
        pool_capacity_bytes: Convenience override for
            ``config.pool_capacity_bytes``.

    Raises:
        ConfigValidationError: If the configuration (or the capacity
            override) is invalid.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        pool_capacity_bytes: int | None = None,
    ) -> None:
        if config is None:
            config = load_config()
        if pool_capacity_bytes is not None:
            config = load_config(
                **{**config.model_dump(), "pool_capacity_bytes": pool_capacity_bytes}
            )
        self._config = config
        self._pool = EntropyPool(
            capacity_bytes=config.pool_capacity_bytes,
            min_bits_before_extract=config.min_bits_before_extract,
            max_extract_bytes=config.max_extract_bytes,
            advance_extraction_counter=config.advance_extraction_counter,
        )
        self._monitor = HealthMonitor.from_config(config)
        self._collector: EntropyCollector | None = None
        self._owned_sources: list[EntropySource] = []
        self._lifecycle_lock = threading.Lock()
        self._closed = False

    # --- Properties ---

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def pool(self) -> EntropyPool:
        return self._pool

    @property
    def monitor(self) -> HealthMonitor:
        return self._monitor

    @property
    def collector(self) -> EntropyCollector | None:
        return self._collector

    @property
    def is_running(self) -> bool:
        collector = self._collector
        return collector is not None and collector.is_running

    @property
    def collector_state(self) -> CollectorState:
        collector = self._collector
        return CollectorState.STOPPED if collector is None else collector.state

    @property
    def halt_error(self) -> CollectionHaltedError | None:
        """Error from the last circuit-breaker trip, if collection halted."""
        collector = self._collector
        return None if collector is None else collector.halt_error

    @property
    def closed(self) -> bool:
        return self._closed

    # --- Lifecycle ---

    def start(
        self,
        source: EntropySource | str | None = None,
        secondary: EntropySource | str | None = None,
        on_halt: Callable[[CollectionHaltedError], None] | None = None,
    ) -> None:
        """Start background collection.

        Args:
            source: A source instance, a registered source name, or ``None``
                to build the sources named in the config.
            secondary: Optional second source XOR-combined with *source*.
            on_halt: Called when the circuit breaker stops collection.

        Raises:
            AlreadyRunningError: If collection is already running.
            NotRunningError: If the engine has been closed.
            KeyError: If a source name is not registered.
        """
        with self._lifecycle_lock:
            if self._closed:
                raise NotRunningError("Engine is closed")
            if self.is_running:
                raise AlreadyRunningError("Entropy collection already running")
            previous = self._collector
            if previous is not None:
                previous.stop()
                if previous.thread_alive:
                    raise AlreadyRunningError(
                        "Previous collection thread is still blocked in its source"
                    )

            resolved = self._resolve_source(source, secondary)
            self._collector = EntropyCollector(
                source=resolved,
                pool=self._pool,
                monitor=self._monitor,
                config=self._config,
                on_halt=on_halt,
            )
            self._collector.start()

    def _resolve_source(
        self,
        source: EntropySource | str | None,
        secondary: EntropySource | str | None,
    ) -> EntropySource:
        if source is None and secondary is None:
            built = build_entropy_source(self._config)
            self._owned_sources.append(built)
            return built

        def _one(given: EntropySource | str | None, fallback_name: str) -> EntropySource:
            if given is None:
                given = fallback_name
            if isinstance(given, str):
                built = EntropySourceRegistry.create(given, self._config)
                self._owned_sources.append(built)
                return built
            return given

        primary = _one(source, self._config.entropy_source_type)
        if secondary is None:
            return primary
        return HybridEntropySource(primary, _one(secondary, self._config.secondary_source_type))

    def stop(self) -> None:
        """Stop collection and join the background thread. Idempotent."""
        collector = self._collector
        if collector is not None:
            collector.stop()

    def close(self) -> None:
        """Stop the collector, close engine-built sources, wipe the pool.

        Idempotent. After closing, extraction fails with
        :class:`~qcrypto_engine.exceptions.InsufficientEntropyError`.
        """
        with self._lifecycle_lock:
            if self._closed:
                return
            self._closed = True
        self.stop()
        for source in self._owned_sources:
            try:
                source.close()
            except Exception:  # Intentional: wiping must still happen
                logger.warning("Error closing entropy source %r", source.name, exc_info=True)
        self._owned_sources.clear()
        self._pool.wipe()
        self._monitor.reset()

    def __enter__(self) -> QuantumCryptoEngine:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __del__(self) -> None:
        if not getattr(self, "_closed", True):
            self.close()

    # --- Queries ---

    def wait_until_ready(self, timeout: float | None = None) -> bool:
        """Block until the pool has met its extraction threshold.

        Returns:
            ``True`` when extraction can succeed, ``False`` on timeout.

        Raises:
            CollectionHaltedError: If collection halts before the pool is
                ready.
            NotRunningError: If collection is not running and the pool is
                not ready.
        """
        if self._pool.is_ready:
            return True
        collector = self._collector
        if collector is None:
            raise NotRunningError("Entropy collection has not been started")
        return collector.wait_for_bits(self._pool.min_bits_before_extract, timeout)

    def check_collection(self) -> None:
        """Raise the stored halt error if the circuit breaker has tripped.

        Raises:
            CollectionHaltedError: If the last collection run halted.
        """
        error = self.halt_error
        if error is not None:
            raise error

    def extract_key_material(self, num_bytes: int) -> bytes:
        """Extract up to 64 bytes from the pool.

        Independent of collector liveness: a pool that has met its threshold
        keeps serving extractions after collection stops or halts.

        Raises:
            InsufficientEntropyError: If the pool threshold is not met.
            RequestTooLargeError: If *num_bytes* exceeds the ceiling.
        """
        return self._pool.extract(num_bytes)

    def health_status(self) -> HealthStatus:
        return self._monitor.current_status()

    def entropy_stats(self) -> EntropyStats:
        """Snapshot pool and monitor state without side effects.

        The pool fields come from one pool lock acquisition and the monitor
        fields from one monitor lock acquisition, so each half is internally
        consistent. The two halves are read one after the other and a batch
        admitted in between can show up in one but not the other.
        """
        available, total_bits = self._pool.usage()
        status, average, samples = self._monitor.snapshot()
        return EntropyStats(
            available_bytes=available,
            pool_capacity=self._pool.capacity,
            health_status=status,
            average_entropy=average,
            total_bits_absorbed=total_bits,
            sample_count=samples,
            collector_state=self.collector_state,
        )
