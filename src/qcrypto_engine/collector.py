"""Background collector loop feeding sources into the pool.

Each cycle pulls a fixed-size raw batch from the source, scores it with the
health monitor and, if the monitor reports healthy, debiases the batch and
mixes it into the pool. Source failures are retried after a back-off until a
consecutive-failure ceiling trips the circuit breaker, which halts collection
and reports :class:`~qcrypto_engine.exceptions.CollectionHaltedError` to the
owner. An unexpected error inside a cycle halts collection the same way.

Shutdown is cooperative. ``stop()`` sets an event that is observed between
cycles and ends any pending sleep, but a source call that is already blocked
is never interrupted: shutdown latency is bounded by the source's own call
latency. A batch that arrives after the stop request is discarded.
"""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import TYPE_CHECKING

from qcrypto_engine.conditioning.bits import as_bits
from qcrypto_engine.conditioning.registry import DebiaserRegistry
from qcrypto_engine.exceptions import (
    AlreadyRunningError,
    CollectionHaltedError,
    NotRunningError,
    SourceFailureError,
)
from qcrypto_engine.logging.logger import CollectionLogger
from qcrypto_engine.logging.types import BatchRecord

if TYPE_CHECKING:
    from collections.abc import Callable

    import numpy as np

    from qcrypto_engine.conditioning.base import Debiaser
    from qcrypto_engine.config import EngineConfig
    from qcrypto_engine.entropy.base import EntropySource
    from qcrypto_engine.health.monitor import HealthMonitor
    from qcrypto_engine.pool.entropy_pool import EntropyPool

logger = logging.getLogger("qcrypto_engine")


class CollectorState(str, Enum):
    """Externally visible collector lifecycle state.

    A collector whose recent batches are being rejected stays ``RUNNING``;
    degraded quality is reported through warnings and the monitor status.
    ``FAILED`` means the circuit breaker tripped; it has stopped semantics
    and ``start()`` may be called again.
    """

    STOPPED = "stopped"
    RUNNING = "running"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


class EntropyCollector:
    """Single-writer collection loop for one pool and monitor.

    Args:
        source: Where raw batches come from.
        pool: Destination pool; only this collector writes to it.
        monitor: Health monitor used to score and gate batches.
        config: Batch size, circuit breaker, timing and logging settings.
        debiaser: Transform applied to admitted batches. Defaults to the
            debiaser named by ``config.debiaser_type``.
        on_halt: Called from the collector thread with the
            :class:`CollectionHaltedError` when collection halts. It runs on
            the collector thread; calling :meth:`start` from inside it raises
            :class:`AlreadyRunningError`.
    """

    def __init__(
        self,
        source: EntropySource,
        pool: EntropyPool,
        monitor: HealthMonitor,
        config: EngineConfig,
        debiaser: Debiaser | None = None,
        on_halt: Callable[[CollectionHaltedError], None] | None = None,
    ) -> None:
        self._source = source
        self._pool = pool
        self._monitor = monitor
        self._debiaser = debiaser or DebiaserRegistry.build(config)
        self._batch_bits = config.batch_bits
        self._max_failures = config.max_consecutive_failures
        self._cycle_interval_s = config.cycle_interval_s
        self._failure_backoff_s = config.failure_backoff_s
        self._join_timeout_s = config.join_timeout_s
        self._on_halt = on_halt
        self._logger = CollectionLogger(config)

        self._state = CollectorState.STOPPED
        self._state_lock = threading.Lock()
        self._cycle_lock = threading.Lock()
        self._progress = threading.Condition()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

        self._consecutive_failures = 0
        self._halt_error: CollectionHaltedError | None = None
        self._cycles = 0
        self._admitted = 0
        self._rejected = 0
        self._failed = 0

    # --- Introspection ---

    @property
    def source(self) -> EntropySource:
        return self._source

    @property
    def state(self) -> CollectorState:
        with self._state_lock:
            return self._state

    @property
    def is_running(self) -> bool:
        return self.state is CollectorState.RUNNING

    @property
    def thread_alive(self) -> bool:
        """Whether the background thread has not exited yet."""
        thread = self._thread
        return thread is not None and thread.is_alive()

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def halt_error(self) -> CollectionHaltedError | None:
        """The error that tripped the circuit breaker on the last run."""
        return self._halt_error

    @property
    def collection_logger(self) -> CollectionLogger:
        return self._logger

    def stats(self) -> dict[str, int | str]:
        """Counters for the collector's lifetime."""
        return {
            "state": str(self.state),
            "source": self._source.name,
            "cycles": self._cycles,
            "admitted": self._admitted,
            "rejected": self._rejected,
            "failed": self._failed,
            "consecutive_failures": self._consecutive_failures,
        }

    # --- Lifecycle ---

    def start(self) -> None:
        """Start the background thread.

        Raises:
            AlreadyRunningError: If a collection loop is already active, or if
                called from the collector thread itself.
        """
        if self.is_running:
            raise AlreadyRunningError("Entropy collection already running")

        previous = self._thread
        if previous is threading.current_thread():
            raise AlreadyRunningError(
                "Cannot restart collection from the collector thread (inside on_halt)"
            )
        # A halted loop may still be unwinding its final cycle.
        if previous is not None:
            previous.join(timeout=self._join_timeout_s)

        with self._state_lock:
            if self._state is CollectorState.RUNNING:
                raise AlreadyRunningError("Entropy collection already running")
            self._state = CollectorState.RUNNING
            self._consecutive_failures = 0
            self._halt_error = None
            # Each run owns its stop event so a finishing run never sees a
            # later run's cleared flag.
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run,
                args=(self._stop_event,),
                daemon=True,
                name="qcrypto-engine-collector",
            )
            thread = self._thread
        thread.start()

    def stop(self) -> None:
        """Request shutdown and join the background thread.

        Idempotent and always safe to call, including after a halt.
        """
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._join_timeout_s)
            if thread.is_alive():
                logger.warning(
                    "Collector thread still blocked in source %r after %.1fs",
                    self._source.name,
                    self._join_timeout_s,
                )
        with self._state_lock:
            if self._state is CollectorState.RUNNING:
                self._state = CollectorState.STOPPED
        self._notify_progress()

    def wait_for_bits(self, min_bits: int, timeout: float | None = None) -> bool:
        """Block until the pool has absorbed at least *min_bits* bits.

        Args:
            min_bits: Target for ``pool.total_bits_absorbed``.
            timeout: Seconds to wait, or ``None`` to wait indefinitely.

        Returns:
            ``True`` once the target is reached, ``False`` on timeout.

        Raises:
            CollectionHaltedError: If the circuit breaker trips while waiting.
            NotRunningError: If the collector stops or was never started
                before the target is reached.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._progress:
            while self._pool.total_bits_absorbed < min_bits:
                if not self.is_running:
                    if self._halt_error is not None:
                        raise self._halt_error
                    raise NotRunningError("Entropy collection is not running")
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return False
                self._progress.wait(remaining)
        return True

    # --- Loop ---

    def _run(self, stop_event: threading.Event) -> None:
        logger.info("Starting entropy collection from source %r", self._source.name)
        while not stop_event.is_set():
            try:
                delivered = self.run_cycle(stop_event)
            except Exception as exc:
                logger.exception("Entropy collection crashed")
                self._halt(
                    CollectionHaltedError(
                        f"Collection halted by unexpected {type(exc).__name__}: {exc}",
                        failures=self._consecutive_failures,
                        last_error=exc,
                    ),
                    stop_event,
                )
                break
            if not delivered:
                if stop_event.is_set():
                    break
                stop_event.wait(self._failure_backoff_s)
            stop_event.wait(self._cycle_interval_s)
        logger.info("Entropy collection stopped")

    def run_cycle(self, stop_event: threading.Event | None = None) -> bool:
        """Execute one collection cycle synchronously.

        Cycles are serialised, so this is safe to call while the background
        thread is running, but it is mainly useful for callers that drive
        collection themselves.

        Args:
            stop_event: Stop flag of the run this cycle belongs to. A batch
                that arrives after it is set is discarded unscored, so a
                source that outlives ``stop()`` cannot refill a wiped pool.

        Returns:
            ``True`` if the source delivered a batch (admitted or rejected),
            ``False`` if the source failed.
        """
        with self._cycle_lock:
            self._cycles += 1
            t0 = time.perf_counter()
            try:
                bits = self._fetch_batch()
            except SourceFailureError as exc:
                fetch_ms = (time.perf_counter() - t0) * 1000.0
                self._handle_failure(exc, fetch_ms, stop_event)
                return False
            fetch_ms = (time.perf_counter() - t0) * 1000.0

            if stop_event is not None and stop_event.is_set():
                logger.debug(
                    "Discarding batch from source %r that arrived after stop",
                    self._source.name,
                )
                return True

            self._consecutive_failures = 0
            score = self._monitor.update_statistics(bits)
            admitted_bits = 0
            if self._monitor.is_healthy():
                conditioned = self._debiaser.debias(bits)
                self._pool.add_entropy(conditioned)
                admitted_bits = len(conditioned)
                self._admitted += 1
            else:
                self._rejected += 1
                logger.warning(
                    "Entropy source quality degraded (score=%.4f, window average=%.4f), "
                    "skipping batch",
                    score,
                    self._monitor.average_entropy(),
                )

            self._record(
                batch_bits=len(bits),
                admitted_bits=admitted_bits,
                entropy_score=score,
                fetch_ms=fetch_ms,
            )
        if admitted_bits:
            self._notify_progress()
        return True

    def _fetch_batch(self) -> np.ndarray:
        """Sample the source, normalising every failure to SourceFailureError."""
        try:
            bits = as_bits(self._source.sample(self._batch_bits))
        except SourceFailureError:
            raise
        except Exception as exc:
            raise SourceFailureError(
                f"Source {self._source.name!r} failed with {type(exc).__name__}: {exc}"
            ) from exc

        if bits.size < self._batch_bits:
            raise SourceFailureError(
                f"Source {self._source.name!r} returned {bits.size} bits, "
                f"needed {self._batch_bits}"
            )
        return bits[: self._batch_bits]

    def _handle_failure(
        self,
        exc: SourceFailureError,
        fetch_ms: float,
        stop_event: threading.Event | None,
    ) -> None:
        self._failed += 1
        self._consecutive_failures += 1
        logger.warning(
            "Entropy collection error (attempt %d/%d): %s",
            self._consecutive_failures,
            self._max_failures,
            exc,
        )
        self._record(
            batch_bits=0,
            admitted_bits=0,
            entropy_score=None,
            fetch_ms=fetch_ms,
            error=str(exc),
        )
        if self._consecutive_failures >= self._max_failures:
            self._trip(exc, stop_event)

    def _trip(self, last_error: SourceFailureError, stop_event: threading.Event | None) -> None:
        halt = CollectionHaltedError(
            f"Collection halted after {self._consecutive_failures} consecutive "
            f"failures of source {self._source.name!r}: {last_error}",
            failures=self._consecutive_failures,
            last_error=last_error,
        )
        logger.error("Too many consecutive failures, stopping collection: %s", halt)
        self._halt(halt, stop_event)

    def _halt(self, halt: CollectionHaltedError, stop_event: threading.Event | None) -> None:
        """Move to ``FAILED``, wake waiters and report *halt* to the owner."""
        with self._state_lock:
            self._halt_error = halt
            self._state = CollectorState.FAILED
        (self._stop_event if stop_event is None else stop_event).set()
        self._notify_progress()

        if self._on_halt is not None:
            try:
                self._on_halt(halt)
            except Exception:  # Intentional: a broken callback must not mask the halt
                logger.exception("on_halt callback raised")

    def _record(
        self,
        *,
        batch_bits: int,
        admitted_bits: int,
        entropy_score: float | None,
        fetch_ms: float,
        error: str | None = None,
    ) -> None:
        self._logger.log_batch(
            BatchRecord(
                timestamp_ns=time.time_ns(),
                source_name=self._source.name,
                batch_bits=batch_bits,
                admitted_bits=admitted_bits,
                entropy_score=entropy_score,
                window_average=self._monitor.average_entropy(),
                health_status=str(self._monitor.current_status()),
                admitted=admitted_bits > 0,
                fetch_ms=fetch_ms,
                consecutive_failures=self._consecutive_failures,
                error=error,
            )
        )

    def _notify_progress(self) -> None:
        with self._progress:
            self._progress.notify_all()
