"""Audit module - Immutable, signed records for every decision.

Components:
- AuditLedger: Opens, seals and persists audit records
- AuditSigner: HMAC signing and verification of records
- AuditStore: Abstract base class for storage backends
- FileAuditStore: Local JSONL files partitioned by day
- S3AuditStore: One S3 object per record
- InMemoryAuditStore: Process-local storage for tests
- BackgroundAuditWriter: Non-blocking writer for slow backends
"""

from helm_ai.governance.audit.store import (
    AuditStore,
    FileAuditStore,
    InMemoryAuditStore,
)
from helm_ai.governance.audit.signing import AuditSigner
from helm_ai.governance.audit.ledger import AuditLedger
from helm_ai.governance.audit.background_writer import BackgroundAuditWriter
from helm_ai.governance.audit.config import (
    create_audit_store,
    create_audit_ledger,
)

__all__ = [
    "AuditLedger",
    "AuditSigner",
    "AuditStore",
    "FileAuditStore",
    "InMemoryAuditStore",
    "BackgroundAuditWriter",
    "create_audit_store",
    "create_audit_ledger",
]
