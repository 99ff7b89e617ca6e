#!/usr/bin/env python3
"""Main entry point for Helm AI."""

from helm_ai.common.logging import get_logger
from helm_ai.common.config import get_config

logger = get_logger(__name__)


def main():
    """Start the API gateway with the configured host and port."""
    import uvicorn

    config = get_config()
    logger.info(f"Helm AI initialized in {config.environment.value} mode")
    logger.info(
        f"Reasoning service: {'configured' if config.reasoning_configured else 'offline'}, "
        f"audit storage: {config.audit_storage_type.value}"
    )

    uvicorn.run(
        "helm_ai.api.gateway:app",
        host=config.api_host,
        port=config.api_port,
        log_level=config.log_level.value.lower(),
    )


if __name__ == "__main__":
    main()
