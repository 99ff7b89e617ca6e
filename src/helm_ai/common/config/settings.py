"""Configuration management - Centralized configuration for Helm AI.

Provides environment-aware configuration with sensible defaults.
All configuration is loaded from environment variables with fallbacks.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from helm_ai.common.constants import AuditConstants, ReasoningConstants


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class AuditStorageType(str, Enum):
    """Audit storage backend types."""
    LOCAL = "local"
    S3 = "s3"
    MEMORY = "memory"


def _env_secret(*names: str) -> Optional[str]:
    """Return the first non-empty environment variable among names."""
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


@dataclass
class Config:
    """Central configuration object for Helm AI.

    All settings can be overridden via environment variables prefixed with HELM_.

    Example:
        HELM_ENVIRONMENT=production
        HELM_LOG_LEVEL=INFO
        HELM_REASONING_API_KEY=xai-...
        HELM_AUDIT_SECRET=...
    """

    # Core settings
    environment: Environment = field(
        default_factory=lambda: Environment(
            os.getenv("HELM_ENVIRONMENT", "development")
        )
    )
    debug: bool = field(
        default_factory=lambda: os.getenv("HELM_DEBUG", "false").lower() == "true"
    )
    log_level: LogLevel = field(
        default_factory=lambda: LogLevel(os.getenv("HELM_LOG_LEVEL", "INFO"))
    )

    # API settings
    api_host: str = field(
        default_factory=lambda: os.getenv("HELM_API_HOST", "0.0.0.0")
    )
    api_port: int = field(
        default_factory=lambda: int(os.getenv("HELM_API_PORT", "8000"))
    )

    # Reasoning service
    reasoning_api_key: Optional[str] = field(
        default_factory=lambda: _env_secret("HELM_REASONING_API_KEY", "GROK_API_KEY"),
        repr=False,
    )
    reasoning_api_url: str = field(
        default_factory=lambda: os.getenv(
            "HELM_REASONING_API_URL", ReasoningConstants.DEFAULT_API_URL
        )
    )
    reasoning_model: str = field(
        default_factory=lambda: os.getenv(
            "HELM_REASONING_MODEL", ReasoningConstants.DEFAULT_MODEL
        )
    )
    reasoning_timeout_seconds: float = field(
        default_factory=lambda: float(
            os.getenv(
                "HELM_REASONING_TIMEOUT_SECONDS",
                str(ReasoningConstants.TIMEOUT_SECONDS),
            )
        )
    )

    # Audit settings
    audit_secret: Optional[str] = field(
        default_factory=lambda: _env_secret("HELM_AUDIT_SECRET", "AUDIT_SECRET"),
        repr=False,
    )
    audit_storage_type: AuditStorageType = field(
        default_factory=lambda: AuditStorageType(
            os.getenv("HELM_AUDIT_STORAGE_TYPE", "local")
        )
    )
    audit_log_dir: Path = field(
        default_factory=lambda: Path(
            os.getenv("HELM_AUDIT_LOG_DIR", "./logs/audit")
        )
    )
    audit_s3_bucket: Optional[str] = field(
        default_factory=lambda: os.getenv("HELM_AUDIT_S3_BUCKET")
    )
    audit_s3_prefix: str = field(
        default_factory=lambda: os.getenv("HELM_AUDIT_S3_PREFIX", "audit-records/")
    )
    audit_background_writer: bool = field(
        default_factory=lambda: os.getenv(
            "HELM_AUDIT_BACKGROUND_WRITER", "false"
        ).lower() == "true"
    )

    # AWS settings (for S3)
    aws_region: str = field(
        default_factory=lambda: os.getenv("AWS_DEFAULT_REGION", "us-east-1")
    )

    # Policy settings
    policy_file: Optional[Path] = field(
        default_factory=lambda: (
            Path(os.environ["HELM_POLICY_FILE"])
            if os.getenv("HELM_POLICY_FILE") else None
        )
    )

    def __post_init__(self):
        """Validate configuration after initialization."""
        # Create audit log directory if using local storage
        if self.audit_storage_type == AuditStorageType.LOCAL:
            self.audit_log_dir.mkdir(parents=True, exist_ok=True)

        # Validate S3 config
        if self.audit_storage_type == AuditStorageType.S3:
            if not self.audit_s3_bucket:
                raise ValueError(
                    "HELM_AUDIT_S3_BUCKET must be set when using S3 audit storage"
                )

        if self.reasoning_timeout_seconds <= 0:
            raise ValueError("HELM_REASONING_TIMEOUT_SECONDS must be positive")

        # Warn about debug in production
        if self.environment == Environment.PRODUCTION and self.debug:
            import warnings
            warnings.warn(
                "Debug mode is enabled in production environment",
                RuntimeWarning,
                stacklevel=2
            )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    @property
    def reasoning_configured(self) -> bool:
        """Whether a Reasoning Service credential is present."""
        return bool(self.reasoning_api_key)

    @property
    def uses_default_signing_key(self) -> bool:
        """Whether audit records would be signed with the built-in key."""
        return (
            not self.audit_secret
            or self.audit_secret == AuditConstants.DEFAULT_SIGNING_KEY
        )


# Singleton instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance.

    Returns:
        Config: The global configuration singleton.
    """
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None
