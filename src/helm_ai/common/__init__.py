"""Common utilities - logging, config, exceptions."""

from helm_ai.common.logging.logger import get_logger
from helm_ai.common.config import Config, get_config, reset_config
from helm_ai.common.exceptions import (
    HelmAIException,
    ConfigurationError,
    InvalidRequestContract,
    ReasoningUnavailable,
    ReasoningMalformed,
    InvalidReasoningContract,
    PersistenceFailure,
)

__all__ = [
    # Logging
    "get_logger",
    # Config
    "Config",
    "get_config",
    "reset_config",
    # Exceptions
    "HelmAIException",
    "ConfigurationError",
    "InvalidRequestContract",
    "ReasoningUnavailable",
    "ReasoningMalformed",
    "InvalidReasoningContract",
    "PersistenceFailure",
]
