"""Per-batch logger for the collector loop.

Uses the standard ``logging`` module with the ``"qcrypto_engine"`` logger.
No ``print()`` statements. Supports three verbosity levels and an
in-memory diagnostic mode for post-hoc analysis.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from qcrypto_engine.config import EngineConfig
    from qcrypto_engine.logging.types import BatchRecord

logger = logging.getLogger("qcrypto_engine")


class CollectionLogger:
    """Per-batch diagnostic logger.

    Log levels:
        ``"none"``: No per-batch output. Records are still stored if
        ``diagnostic_mode=True``.

        ``"summary"``: One line per batch at INFO level (score, admission,
        window average, status).

        ``"full"``: JSON dump of every record at INFO level.

    Rejections and source failures are reported by the collector itself at
    WARNING, independent of this setting.
    """

    def __init__(self, config: EngineConfig) -> None:
        self._log_level = config.log_level
        self._diagnostic_mode = config.diagnostic_mode
        self._records: list[BatchRecord] = []
        self._lock = threading.Lock()

    def log_batch(self, record: BatchRecord) -> None:
        """Log a single collector cycle."""
        if self._diagnostic_mode:
            with self._lock:
                self._records.append(record)

        if self._log_level == "none":
            return

        if self._log_level == "summary":
            logger.info(
                "batch source=%s bits=%d score=%s admitted=%s(%d) avg=%.4f status=%s "
                "fetch=%.2fms failures=%d",
                record.source_name,
                record.batch_bits,
                "n/a" if record.entropy_score is None else f"{record.entropy_score:.4f}",
                record.admitted,
                record.admitted_bits,
                record.window_average,
                record.health_status,
                record.fetch_ms,
                record.consecutive_failures,
            )
        elif self._log_level == "full":
            logger.info("batch_record: %s", json.dumps(asdict(record), default=str))

    def get_diagnostic_data(self) -> list[BatchRecord]:
        """Return all stored records (requires ``diagnostic_mode=True``)."""
        with self._lock:
            return list(self._records)

    def get_summary_stats(self) -> dict[str, Any]:
        """Compute summary statistics over all stored records.

        Returns:
            Dictionary with aggregate stats, or empty dict if no records.
        """
        with self._lock:
            records = list(self._records)
        if not records:
            return {}

        n = len(records)
        scored = [r.entropy_score for r in records if r.entropy_score is not None]
        admitted = sum(1 for r in records if r.admitted)
        failures = sum(1 for r in records if r.error is not None)
        return {
            "total_batches": n,
            "admitted_batches": admitted,
            "rejected_batches": len(scored) - admitted,
            "failed_batches": failures,
            "admission_rate": admitted / n,
            "mean_score": sum(scored) / len(scored) if scored else 0.0,
            "min_score": min(scored) if scored else 0.0,
            "bits_admitted": sum(r.admitted_bits for r in records),
            "mean_fetch_ms": sum(r.fetch_ms for r in records) / n,
        }
