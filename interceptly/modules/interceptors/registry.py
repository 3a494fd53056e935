"""
Interceptor Registry following Black Box Design principles.

The registry:
- Holds the fixed set of interceptor variants, keyed by id
- Answers availability queries for callers listing usable interceptors
- Fans out deactivate_all for full teardown
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Type

from ...config.provider import ConfigProvider
from ...errors import UnknownInterceptorError
from ..session import SessionRegistry
from .base import SetupScriptInterceptor
from .interfaces import Interceptor, InterceptorDescriptor
from .terminal import (
    ExistingFishInterceptor,
    ExistingPowerShellInterceptor,
    ExistingTerminalInterceptor,
)

logger = logging.getLogger(__name__)

INTERCEPTOR_TYPES: List[Type[SetupScriptInterceptor]] = [
    ExistingTerminalInterceptor,
    ExistingFishInterceptor,
    ExistingPowerShellInterceptor,
]


class InterceptorRegistry:
    """Mapping from interceptor id to interceptor instance."""

    def __init__(self, interceptors: Iterable[Interceptor]):
        self._interceptors: Dict[str, Interceptor] = {}
        for interceptor in interceptors:
            if interceptor.id in self._interceptors:
                raise ValueError(f"Duplicate interceptor id: {interceptor.id}")
            self._interceptors[interceptor.id] = interceptor

    def get(self, interceptor_id: str) -> Interceptor:
        """
        Look up an interceptor.

        Raises:
            UnknownInterceptorError: If no interceptor has this id
        """
        try:
            return self._interceptors[interceptor_id]
        except KeyError:
            raise UnknownInterceptorError(interceptor_id) from None

    def __contains__(self, interceptor_id: str) -> bool:
        return interceptor_id in self._interceptors

    def __len__(self) -> int:
        return len(self._interceptors)

    def list_interceptors(self) -> List[Interceptor]:
        return list(self._interceptors.values())

    def available(self) -> List[Interceptor]:
        """Interceptors whose environment prerequisites are met right now."""
        return [interceptor for interceptor in self._interceptors.values() if interceptor.is_activable()]

    def descriptors(self) -> List[InterceptorDescriptor]:
        return [interceptor.descriptor() for interceptor in self._interceptors.values()]

    async def deactivate_all(self) -> None:
        """
        Deactivate every session of every interceptor.

        Used on proxy shutdown or a user-initiated reset. A failing
        interceptor is logged and does not stop the others.
        """
        interceptors = list(self._interceptors.values())
        results = await asyncio.gather(
            *(interceptor.deactivate_all() for interceptor in interceptors),
            return_exceptions=True,
        )
        for interceptor, result in zip(interceptors, results):
            if isinstance(result, Exception):
                logger.error(f"Failed to deactivate {interceptor.id}: {result}")

    @staticmethod
    def build(
        config_provider: ConfigProvider,
        session_registry: Optional[SessionRegistry] = None,
    ) -> "InterceptorRegistry":
        """
        Build the registry with every known interceptor variant.

        Args:
            config_provider: Configuration provider
            session_registry: Shared session registry; a new one is created
                if omitted

        Returns:
            InterceptorRegistry holding one instance per variant
        """
        sessions = session_registry if session_registry is not None else SessionRegistry()
        registry = InterceptorRegistry(
            interceptor_type(sessions, config_provider) for interceptor_type in INTERCEPTOR_TYPES
        )
        logger.info(f"Built interceptor registry: {', '.join(i.id for i in registry.list_interceptors())}")
        return registry
