"""
Interceptly - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Configures logging
3. Builds the session registry and interceptor registry once
4. Drains every session on shutdown

All activation logic is in the modules, following black box principles.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from interceptly.config.provider import ConfigProvider, EnvConfigProvider
from interceptly.logging_config import configure_logging
from interceptly.modules.interceptors import InterceptorRegistry
from interceptly.modules.session import SessionRegistry

logger = logging.getLogger("interceptly.main")


class InterceptorManager:
    """Process-scoped owner of the session registry and the interceptors."""

    def __init__(self, config_provider: Optional[ConfigProvider] = None):
        self.config_provider: ConfigProvider = config_provider or EnvConfigProvider()
        self.sessions = SessionRegistry()
        self.interceptors = InterceptorRegistry.build(self.config_provider, self.sessions)

    async def shutdown(self) -> None:
        """Deactivate everything; leaves no listener or marker file behind."""
        logger.info(f"Shutting down interceptors ({len(self.sessions)} live sessions)...")
        await self.interceptors.deactivate_all()
        logger.info("Interceptor shutdown complete")


@asynccontextmanager
async def lifespan(
    config_provider: Optional[ConfigProvider] = None,
    setup_logging: bool = True,
) -> AsyncIterator[InterceptorManager]:
    """
    Manage the manager lifecycle - build at start-up, drain at shutdown.

    Example:
        >>> async with lifespan() as manager:
        ...     terminal = manager.interceptors.get("existing-terminal")
        ...     result = await terminal.activate(8000)
    """
    provider = config_provider or EnvConfigProvider()
    if setup_logging:
        configure_logging(provider.get_interceptor_config().log_level)

    logger.info("Starting Interceptly interceptor manager...")
    manager = InterceptorManager(provider)
    available = [interceptor.id for interceptor in manager.interceptors.available()]
    logger.info(f"Activable interceptors: {', '.join(available) or 'none'}")

    try:
        yield manager
    finally:
        await manager.shutdown()
