"""Audit Layer Configuration and Initialization.

Factory methods that build the audit store and ledger from the
application Config.

Environment variables (read through Config):
- HELM_AUDIT_STORAGE_TYPE: "local" (default), "s3" or "memory"
- HELM_AUDIT_LOG_DIR: directory for local JSONL files
- HELM_AUDIT_S3_BUCKET / HELM_AUDIT_S3_PREFIX: S3 location
- HELM_AUDIT_BACKGROUND_WRITER: queue writes on a worker thread
- HELM_AUDIT_SECRET: HMAC signing key
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from helm_ai.common.config import AuditStorageType, Config, get_config
from helm_ai.governance.audit.background_writer import BackgroundAuditWriter
from helm_ai.governance.audit.ledger import AuditLedger
from helm_ai.governance.audit.signing import AuditSigner
from helm_ai.governance.audit.store import AuditStore, FileAuditStore, InMemoryAuditStore

logger = logging.getLogger(__name__)


def create_audit_store(
    config: Optional[Config] = None,
    use_background_writer: Optional[bool] = None,
) -> AuditStore:
    """Factory method to create audit store based on configuration.

    Args:
        config: Application config. Uses the global config if not provided.
        use_background_writer: Override HELM_AUDIT_BACKGROUND_WRITER.

    Returns:
        Configured AuditStore instance
    """
    config = config or get_config()
    storage_type = config.audit_storage_type

    if storage_type == AuditStorageType.S3:
        from helm_ai.governance.audit.s3_store import S3AuditStore

        store: AuditStore = S3AuditStore(
            bucket_name=config.audit_s3_bucket,
            prefix=config.audit_s3_prefix,
            environment=config.environment.value,
            region=config.aws_region,
        )
    elif storage_type == AuditStorageType.LOCAL:
        store = FileAuditStore(log_dir=str(config.audit_log_dir))
    elif storage_type == AuditStorageType.MEMORY:
        store = InMemoryAuditStore()
    else:
        raise ValueError(f"Unknown storage type: {storage_type}")

    if use_background_writer is None:
        use_background_writer = config.audit_background_writer
    if use_background_writer:
        store = BackgroundAuditWriter(store)

    logger.info(
        f"Audit store ready: type={storage_type.value}, "
        f"background_writer={bool(use_background_writer)}"
    )
    return store


def create_audit_ledger(
    config: Optional[Config] = None,
    store: Optional[AuditStore] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> AuditLedger:
    """Build the audit ledger with the configured signing key and store."""
    config = config or get_config()
    signer = AuditSigner(config.audit_secret)

    return AuditLedger(
        store=store or create_audit_store(config),
        signer=signer,
        clock=clock,
    )


__all__ = [
    "create_audit_store",
    "create_audit_ledger",
]
