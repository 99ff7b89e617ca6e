"""Audit record signing - HMAC over a canonical JSON serialization."""

import hashlib
import hmac
import json
import logging
from typing import Optional

from helm_ai.common.constants import AuditConstants
from helm_ai.common.exceptions import ConfigurationError
from helm_ai.governance.schemas import AuditRecord

logger = logging.getLogger(__name__)


class AuditSigner:
    """Signs and verifies audit records with a keyed HMAC.

    The canonical payload is every record field except `signature`,
    serialized as JSON with sorted keys, compact separators and ISO
    timestamps, so any field change breaks verification.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: str = AuditConstants.SIGNATURE_ALGORITHM,
    ):
        if algorithm not in hashlib.algorithms_available:
            raise ConfigurationError(
                f"Unsupported signature algorithm: {algorithm}",
                details={"algorithm": algorithm},
            )
        self._secret_key = secret_key or AuditConstants.DEFAULT_SIGNING_KEY
        self.algorithm = algorithm

    def __repr__(self) -> str:
        return f"AuditSigner(algorithm={self.algorithm!r}, default_key={self.is_default_key})"

    @property
    def is_default_key(self) -> bool:
        """Whether records are being signed with the built-in development key."""
        return self._secret_key == AuditConstants.DEFAULT_SIGNING_KEY

    def ensure_safe_for(self, production: bool) -> None:
        """Refuse the development key in production, warn elsewhere.

        Raises:
            ConfigurationError: If the default key is used in production
        """
        if not self.is_default_key:
            return
        if production:
            raise ConfigurationError(
                "Audit signing key is not configured. Set HELM_AUDIT_SECRET."
            )
        logger.warning(
            "Audit records are signed with the default development key. "
            "Set HELM_AUDIT_SECRET before deploying."
        )

    @staticmethod
    def canonical_payload(record: AuditRecord) -> str:
        """Deterministic serialization of a record without its signature."""
        data = record.model_dump(mode="json", exclude={"signature"})
        return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    def sign(self, record: AuditRecord) -> str:
        """Compute the hex signature for a record."""
        return hmac.new(
            self._secret_key.encode("utf-8"),
            self.canonical_payload(record).encode("utf-8"),
            self.algorithm,
        ).hexdigest()

    def verify(self, record: AuditRecord) -> bool:
        """Check a record's signature in constant time."""
        if not record.signature:
            return False
        return hmac.compare_digest(self.sign(record), record.signature)
