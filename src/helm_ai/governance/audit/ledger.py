"""Audit Ledger - Opens, seals and persists decision audit records."""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import logging

from helm_ai.common.constants import AuditConstants
from helm_ai.common.exceptions import PersistenceFailure
from helm_ai.governance.audit.signing import AuditSigner
from helm_ai.governance.audit.store import AuditStore
from helm_ai.governance.schemas import AuditRecord, AuditStatus, utc_now

logger = logging.getLogger(__name__)


class AuditLedger:
    """Records every decision immutably.

    A record is opened in PROCESSING, moved once to a terminal status by
    the caller, sealed with an HMAC signature, then persisted. Persistence
    failures are logged and reported through the return value; they never
    propagate to the caller.
    """

    def __init__(
        self,
        store: AuditStore,
        signer: Optional[AuditSigner] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.signer = signer or AuditSigner()
        self._clock = clock or utc_now

    def open(
        self,
        request_id: str,
        actor: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> AuditRecord:
        """Start a new unsigned record in PROCESSING status."""
        return AuditRecord(
            request_id=request_id,
            actor=actor,
            timestamp=self._clock(),
            request_payload=dict(payload or {}),
            status=AuditStatus.PROCESSING,
        )

    def seal(self, record: AuditRecord) -> AuditRecord:
        """Return a copy of the record carrying its signature."""
        unsigned = record.model_copy(update={"signature": None})
        return unsigned.model_copy(update={"signature": self.signer.sign(unsigned)})

    def persist(self, record: AuditRecord) -> bool:
        """Write a sealed record through the store.

        Returns:
            True if the store accepted the record, False otherwise
        """
        try:
            self.store.append_record(record)
            return True
        except Exception as e:
            failure = PersistenceFailure(
                f"Failed to persist audit record {record.id}",
                details={"request_id": record.request_id, "error": str(e)},
            )
            logger.error(
                f"{failure.code}: {failure.message}: {e}",
                extra={"request_id": record.request_id, "audit_id": record.id},
            )
            return False

    def commit(self, record: AuditRecord) -> AuditRecord:
        """Seal and persist a terminal record, returning the sealed copy."""
        if not record.status.is_terminal:
            raise ValueError(f"Cannot commit audit record in status {record.status.value}")
        sealed = self.seal(record)
        self.persist(sealed)
        return sealed

    def verify(self, record: AuditRecord) -> bool:
        """Check a record's signature against the ledger key."""
        return self.signer.verify(record)

    def get_records(
        self,
        request_id: Optional[str] = None,
        actor: Optional[str] = None,
        status: Optional[AuditStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = AuditConstants.DEFAULT_QUERY_LIMIT,
    ) -> List[AuditRecord]:
        """Query stored records, most recent first."""
        return self.store.get_records(
            request_id=request_id,
            actor=actor,
            status=status,
            start=start,
            end=end,
            limit=limit,
        )
