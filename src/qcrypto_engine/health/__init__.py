"""Health monitoring for qcrypto-engine."""

from qcrypto_engine.health.monitor import HealthMonitor
from qcrypto_engine.health.types import HealthStatus

__all__ = [
    "HealthMonitor",
    "HealthStatus",
]
