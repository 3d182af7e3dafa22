"""Logfire observability for the Lending Library server."""

import logging

import logfire

from ..config import LibraryConfig, get_config
from .config import ObservabilityConfig

logger = logging.getLogger(__name__)


def initialize_observability(
    config: ObservabilityConfig | None = None,
    library_config: LibraryConfig | None = None,
) -> None:
    """
    Configure Logfire for this server.

    The service name and version are the MCP server's own, so spans from
    several library servers can be told apart.
    """
    config = config or ObservabilityConfig()
    library_config = library_config or get_config()

    if not config.enabled:
        logger.debug("Logfire disabled (LOGFIRE_ENABLED=false)")
        return

    logfire.configure(
        token=config.token or None,
        service_name=library_config.server_name,
        service_version=library_config.server_version,
        environment=config.environment,
        send_to_logfire=config.send_to_logfire,
        console=None if config.console else False,
    )
    logger.info(
        "Logfire configured for %s (environment=%s, send=%s)",
        library_config.server_name,
        config.environment,
        config.send_to_logfire,
    )


__all__ = [
    "ObservabilityConfig",
    "initialize_observability",
    "logfire",
]
