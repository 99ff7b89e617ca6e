"""Audit Store - Abstraction for audit record persistence.

This module provides an interface for audit storage backends,
decoupling the audit ledger from specific persistence mechanisms.

Design principles:
- Append-only: records are written once and never updated
- Thread-safe operations
- Queries by request id, actor, status and timestamp range
"""

from abc import ABC, abstractmethod
from datetime import date as date_type, datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, List, Optional
import fcntl
import json
import logging
import os
import threading

from helm_ai.common.constants import AuditConstants
from helm_ai.governance.schemas import AuditRecord, AuditStatus

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def record_matches(
    record: AuditRecord,
    request_id: Optional[str] = None,
    actor: Optional[str] = None,
    status: Optional[AuditStatus] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> bool:
    """Apply the standard query filters to one record.

    `start` is inclusive and `end` is exclusive.
    """
    if request_id and record.request_id != request_id:
        return False
    if actor and record.actor != actor:
        return False
    if status and record.status != status:
        return False
    timestamp = _as_utc(record.timestamp)
    if start and timestamp < _as_utc(start):
        return False
    if end and timestamp >= _as_utc(end):
        return False
    return True


def newest_first(records: Iterable[AuditRecord], limit: Optional[int]) -> List[AuditRecord]:
    """Sort records by timestamp, most recent first, and apply a limit."""
    ordered = sorted(records, key=lambda r: _as_utc(r.timestamp), reverse=True)
    if limit is not None:
        ordered = ordered[: max(limit, 0)]
    return ordered


def partition_dates(
    start: Optional[datetime],
    end: Optional[datetime],
    available: Iterable[str],
) -> List[str]:
    """Pick the YYYY-MM-DD partitions that can hold records in [start, end)."""
    dates = sorted(set(available))
    if start is not None:
        first = _as_utc(start).date().isoformat()
        dates = [d for d in dates if d >= first]
    if end is not None:
        last = (_as_utc(end) - timedelta(microseconds=1)).date().isoformat()
        dates = [d for d in dates if d <= last]
    return dates


class AuditStore(ABC):
    """Abstract base class for audit storage backends.

    Implementations must provide thread-safe, append-only storage.
    """

    @abstractmethod
    def append_record(self, record: AuditRecord) -> AuditRecord:
        """Append a sealed audit record to the store.

        Args:
            record: The audit record to append

        Returns:
            The stored record

        Raises:
            IOError: If write fails
        """
        pass

    @abstractmethod
    def get_records(
        self,
        request_id: Optional[str] = None,
        actor: Optional[str] = None,
        status: Optional[AuditStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = AuditConstants.DEFAULT_QUERY_LIMIT,
    ) -> List[AuditRecord]:
        """Retrieve audit records with optional filtering.

        Args:
            request_id: Filter by request id
            actor: Filter by actor
            status: Filter by status
            start: Earliest timestamp (inclusive)
            end: Latest timestamp (exclusive)
            limit: Maximum number of records, None for all

        Returns:
            Matching records, most recent first
        """
        pass


class InMemoryAuditStore(AuditStore):
    """Process-local store used by tests and embedded callers."""

    def __init__(self):
        self._records: List[AuditRecord] = []
        self._lock = threading.Lock()

    def append_record(self, record: AuditRecord) -> AuditRecord:
        with self._lock:
            self._records.append(record)
        return record

    def get_records(
        self,
        request_id: Optional[str] = None,
        actor: Optional[str] = None,
        status: Optional[AuditStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = AuditConstants.DEFAULT_QUERY_LIMIT,
    ) -> List[AuditRecord]:
        with self._lock:
            snapshot = list(self._records)
        matching = [
            r for r in snapshot
            if record_matches(r, request_id, actor, status, start, end)
        ]
        return newest_first(matching, limit)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class FileAuditStore(AuditStore):
    """File-based audit store in JSONL format.

    Features:
    - Append-only JSONL files partitioned by the record's UTC date
    - Atomic appends with file locking for cross-process safety
    - Owner-only file permissions
    """

    DEFAULT_LOG_DIR = Path("logs") / "audit"
    FILENAME_PATTERN = "helm_audit_{date}.jsonl"

    def __init__(
        self,
        log_dir: Optional[str] = None,
        log_filename_pattern: str = FILENAME_PATTERN,
        fsync_on_write: bool = False,
    ):
        """Initialize file audit store.

        Args:
            log_dir: Directory for audit logs. Uses default if not provided.
            log_filename_pattern: Pattern for log filename. {date} is replaced.
            fsync_on_write: Whether to fsync after each write (slower but safer).
        """
        self.log_dir = Path(log_dir) if log_dir else self.DEFAULT_LOG_DIR
        self.log_filename_pattern = log_filename_pattern
        self.fsync_on_write = fsync_on_write

        self._lock = threading.Lock()

        self.log_dir.mkdir(parents=True, exist_ok=True)
        try:
            os.chmod(self.log_dir, 0o700)
        except OSError as e:
            logger.debug(f"Could not restrict audit directory permissions: {e}")

    def _log_path(self, day: str) -> Path:
        return self.log_dir / self.log_filename_pattern.replace("{date}", day)

    def _available_dates(self) -> List[str]:
        prefix, _, suffix = self.log_filename_pattern.partition("{date}")
        dates = []
        for path in self.log_dir.glob(prefix + "*" + suffix):
            day = path.name[len(prefix): len(path.name) - len(suffix)]
            try:
                date_type.fromisoformat(day)
            except ValueError:
                continue
            dates.append(day)
        return dates

    def append_record(self, record: AuditRecord) -> AuditRecord:
        """Append record to its day's log file with file locking."""
        day = _as_utc(record.timestamp).strftime("%Y-%m-%d")
        line = record.to_jsonl() + "\n"

        with self._lock:
            fd = os.open(
                str(self._log_path(day)),
                os.O_WRONLY | os.O_CREAT | os.O_APPEND,
                0o600,
            )
            try:
                fcntl.flock(fd, fcntl.LOCK_EX)
                try:
                    os.write(fd, line.encode("utf-8"))
                    if self.fsync_on_write:
                        os.fsync(fd)
                finally:
                    fcntl.flock(fd, fcntl.LOCK_UN)
            finally:
                os.close(fd)

        return record

    def _read_day(self, day: str) -> Iterable[AuditRecord]:
        log_path = self._log_path(day)
        if not log_path.exists():
            return

        with open(log_path, "r") as f:
            for line_number, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    yield AuditRecord.from_jsonl(line)
                except (json.JSONDecodeError, ValueError) as e:
                    logger.warning(
                        f"Skipped malformed audit record at {log_path.name}:{line_number}: {e}"
                    )

    def get_records(
        self,
        request_id: Optional[str] = None,
        actor: Optional[str] = None,
        status: Optional[AuditStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = AuditConstants.DEFAULT_QUERY_LIMIT,
    ) -> List[AuditRecord]:
        """Retrieve audit records from the day files covering the range."""
        matching = []
        for day in partition_dates(start, end, self._available_dates()):
            for record in self._read_day(day):
                if record_matches(record, request_id, actor, status, start, end):
                    matching.append(record)
        return newest_first(matching, limit)

    def get_log_files(self) -> List[Path]:
        """Get list of all audit log files."""
        return sorted(self._log_path(day) for day in self._available_dates())
