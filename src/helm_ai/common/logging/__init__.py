"""Logging helpers."""

from helm_ai.common.logging.logger import LOG_FORMAT, get_logger

__all__ = ["LOG_FORMAT", "get_logger"]
