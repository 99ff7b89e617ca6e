"""Background Audit Writer - Non-blocking audit persistence."""

import atexit
import logging
import queue
import threading
from datetime import datetime
from typing import List, Optional

from helm_ai.common.constants import AuditConstants
from helm_ai.governance.audit.store import AuditStore
from helm_ai.governance.schemas import AuditRecord, AuditStatus

logger = logging.getLogger(__name__)


class BackgroundAuditWriter(AuditStore):
    """Wraps a store so appends are queued and written by a worker thread.

    Reads go straight to the wrapped store and may not yet see queued
    records; call flush() first when that matters.
    """

    DEFAULT_QUEUE_SIZE = AuditConstants.QUEUE_SIZE
    DEFAULT_FLUSH_TIMEOUT = AuditConstants.FLUSH_TIMEOUT_SECONDS

    def __init__(
        self,
        store: AuditStore,
        max_queue_size: int = DEFAULT_QUEUE_SIZE,
        flush_timeout: float = DEFAULT_FLUSH_TIMEOUT,
        sync_fallback: bool = True,
    ):
        """Initialize background audit writer.

        Args:
            store: Audit store backend that performs the actual writes.
            max_queue_size: Maximum number of records to buffer.
            flush_timeout: Timeout for flushing queue on shutdown.
            sync_fallback: Whether to write synchronously when queue is full.
        """
        self.store = store
        self.max_queue_size = max_queue_size
        self.flush_timeout = flush_timeout
        self.sync_fallback = sync_fallback

        self._queue: "queue.Queue[Optional[AuditRecord]]" = queue.Queue(
            maxsize=max_queue_size
        )

        self._shutdown_event = threading.Event()
        self._writer_thread: Optional[threading.Thread] = None

        self._records_written = 0
        self._records_dropped = 0
        self._write_failures = 0
        self._sync_fallback_count = 0
        self._stats_lock = threading.Lock()

        self._start_writer()
        atexit.register(self.shutdown)

    def _start_writer(self) -> None:
        self._writer_thread = threading.Thread(
            target=self._writer_loop,
            name="AuditWriter",
            daemon=True,
        )
        self._writer_thread.start()
        logger.info("Background audit writer started")

    def _write(self, record: AuditRecord) -> None:
        try:
            self.store.append_record(record)
        except Exception as e:
            with self._stats_lock:
                self._write_failures += 1
            logger.error(
                f"Failed to write audit record {record.id}: {e}",
                extra={"request_id": record.request_id},
            )
            return
        with self._stats_lock:
            self._records_written += 1

    def _writer_loop(self) -> None:
        """Background loop that writes records from the queue."""
        while not self._shutdown_event.is_set():
            try:
                record = self._queue.get(timeout=AuditConstants.QUEUE_GET_TIMEOUT)
            except queue.Empty:
                continue

            try:
                if record is None:
                    break
                self._write(record)
            finally:
                self._queue.task_done()

        self._drain_queue()
        logger.info("Background audit writer stopped")

    def _drain_queue(self) -> None:
        """Drain remaining records from the queue."""
        drained = 0
        while True:
            try:
                record = self._queue.get_nowait()
            except queue.Empty:
                break
            try:
                if record is not None:
                    self._write(record)
                    drained += 1
            finally:
                self._queue.task_done()

        if drained > 0:
            logger.info(f"Drained {drained} audit records during shutdown")

    def append_record(self, record: AuditRecord) -> AuditRecord:
        """Queue a record for writing.

        If the queue is full and sync_fallback is True, writes synchronously.
        If the queue is full and sync_fallback is False, drops the record.
        """
        if self._shutdown_event.is_set():
            return self.store.append_record(record)

        try:
            self._queue.put_nowait(record)
            return record
        except queue.Full:
            if self.sync_fallback:
                with self._stats_lock:
                    self._sync_fallback_count += 1
                logger.warning("Audit queue full, writing synchronously")
                return self.store.append_record(record)
            with self._stats_lock:
                self._records_dropped += 1
            logger.error("Audit queue full, record dropped")
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
        return self.store.get_records(
            request_id=request_id,
            actor=actor,
            status=status,
            start=start,
            end=end,
            limit=limit,
        )

    def flush(self) -> None:
        """Block until every queued record has been handled."""
        self._queue.join()

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Shutdown the background writer gracefully.

        Args:
            timeout: Maximum time to wait for queue drain. Uses default if None.
        """
        if self._shutdown_event.is_set():
            return

        timeout = timeout if timeout is not None else self.flush_timeout

        logger.info("Shutting down background audit writer...")
        try:
            self._queue.put_nowait(None)
        except queue.Full:
            logger.debug("Audit queue full at shutdown, relying on shutdown event")
        self._shutdown_event.set()

        if self._writer_thread and self._writer_thread.is_alive():
            self._writer_thread.join(timeout=timeout)
            if self._writer_thread.is_alive():
                logger.warning("Audit writer did not stop cleanly")

        stats = self.get_stats()
        logger.info(
            f"Audit writer shutdown complete. "
            f"Written: {stats['records_written']}, "
            f"Failed: {stats['write_failures']}, "
            f"Dropped: {stats['records_dropped']}, "
            f"Sync fallbacks: {stats['sync_fallback_count']}"
        )

    def get_stats(self) -> dict:
        """Get writer statistics."""
        with self._stats_lock:
            return {
                "records_written": self._records_written,
                "records_dropped": self._records_dropped,
                "write_failures": self._write_failures,
                "sync_fallback_count": self._sync_fallback_count,
                "queue_size": self._queue.qsize(),
                "max_queue_size": self.max_queue_size,
            }

    @property
    def is_running(self) -> bool:
        """Whether the background writer is running."""
        return not self._shutdown_event.is_set()
