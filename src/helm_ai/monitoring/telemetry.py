"""Telemetry - running counters for operational status reporting."""

import logging
import threading
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional

from helm_ai.governance.schemas import utc_now

logger = logging.getLogger(__name__)


class ServiceStatus(str, Enum):
    """Configuration status of the Reasoning Service."""
    OPERATIONAL = "OPERATIONAL"
    OFFLINE = "OFFLINE"


@dataclass(frozen=True)
class TelemetrySnapshot:
    status: ServiceStatus
    uptime_ms: int
    uptime_hours: float
    request_count: int
    total_cost_usd: float
    avg_cost_per_request: float

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


class TelemetryAggregator:
    """Lock-protected request and cost counters.

    One instance per service; tests create their own.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or utc_now
        self._lock = threading.Lock()
        self._start_time = self._clock()
        self._request_count = 0
        self._total_cost_usd = 0.0

    def record(self, cost_usd: Optional[float] = None) -> None:
        """Count one completed orchestration.

        Args:
            cost_usd: Reasoning cost, passed only when a validated
                reasoning response exists
        """
        with self._lock:
            self._request_count += 1
            if cost_usd:
                self._total_cost_usd += cost_usd

    def snapshot(self, configured: bool) -> TelemetrySnapshot:
        """Current counters. Status reflects configuration, not live health."""
        now = self._clock()
        with self._lock:
            count = self._request_count
            total_cost = self._total_cost_usd
            started = self._start_time

        uptime_ms = max(int((now - started).total_seconds() * 1000), 0)
        return TelemetrySnapshot(
            status=ServiceStatus.OPERATIONAL if configured else ServiceStatus.OFFLINE,
            uptime_ms=uptime_ms,
            uptime_hours=round(uptime_ms / 3_600_000, 2),
            request_count=count,
            total_cost_usd=total_cost,
            avg_cost_per_request=total_cost / count if count else 0.0,
        )

    def reset(self) -> None:
        """Restart the counters and the uptime clock."""
        with self._lock:
            self._start_time = self._clock()
            self._request_count = 0
            self._total_cost_usd = 0.0
        logger.info("Telemetry counters reset")
