"""Configuration module - Centralized config management."""

from helm_ai.common.config.settings import (
    Config,
    Environment,
    LogLevel,
    AuditStorageType,
    get_config,
    reset_config,
)

__all__ = [
    "Config",
    "Environment",
    "LogLevel",
    "AuditStorageType",
    "get_config",
    "reset_config",
]
