"""Interceptor interfaces following Black Box Design principles."""
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol


@dataclass
class ActivationResult:
    """What a caller needs to finish an activation from the target environment."""
    port: int
    setup_url: str
    command: str

    def to_dict(self) -> Dict[str, Any]:
        return {"port": self.port, "setupUrl": self.setup_url, "command": self.command}


@dataclass
class InterceptorDescriptor:
    """Static identity of an interceptor variant."""
    id: str
    name: str
    description: str
    is_activable: Callable[[], bool]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "isActivable": self.is_activable(),
        }


class Interceptor(Protocol):
    """Protocol implemented by every interceptor variant."""

    id: str
    name: str
    description: str

    def is_activable(self) -> bool:
        """
        Check environment prerequisites.

        Must be cheap and free of side effects; callers poll it to decide
        which interceptors to offer.
        """
        ...

    async def activate(
        self, target_proxy_port: int, options: Optional[Dict[str, Any]] = None
    ) -> ActivationResult:
        """
        Start an activation for a proxy port.

        Idempotent: a pending or active session for the port returns its
        existing metadata.

        Raises:
            NotActivableError: If is_activable() is False
            ResourceExhaustedError: If no setup listener could be started
        """
        ...

    def is_active(self, target_proxy_port: int) -> bool:
        """Check whether the port's activation has been confirmed."""
        ...

    async def deactivate(self, target_proxy_port: int) -> None:
        """Terminate the port's session; a no-op if there is none."""
        ...

    async def deactivate_all(self) -> None:
        """Terminate every session this interceptor owns."""
        ...

    def descriptor(self) -> InterceptorDescriptor:
        ...
