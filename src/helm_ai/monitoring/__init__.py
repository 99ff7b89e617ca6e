"""Monitoring - Operational telemetry."""

from helm_ai.monitoring.telemetry import (
    ServiceStatus,
    TelemetryAggregator,
    TelemetrySnapshot,
)

__all__ = [
    "ServiceStatus",
    "TelemetryAggregator",
    "TelemetrySnapshot",
]
