"""Errors raised by interceptors, setup services and the interceptor registry."""


class InterceptorError(Exception):
    """Base class for interceptor failures. None of them are fatal to the manager."""


class NotActivableError(InterceptorError):
    """Activation requested for an interceptor whose prerequisites are missing."""

    def __init__(self, interceptor_id: str, reason: str = "prerequisites not met"):
        self.interceptor_id = interceptor_id
        self.reason = reason
        super().__init__(f"Interceptor {interceptor_id} cannot be activated: {reason}")


class ResourceExhaustedError(InterceptorError):
    """No ephemeral listener could be started for a setup service."""


class UnknownInterceptorError(InterceptorError, KeyError):
    """Lookup of an interceptor id that the registry does not hold."""

    def __init__(self, interceptor_id: str):
        self.interceptor_id = interceptor_id
        super().__init__(f"Unknown interceptor: {interceptor_id}")

    def __str__(self) -> str:
        return self.args[0]


class ScriptNotFoundError(InterceptorError):
    """No bootstrap script spec could be found for an interceptor kind."""

    def __init__(self, interceptor_id: str, searched: list):
        self.interceptor_id = interceptor_id
        self.searched = searched
        super().__init__(
            f"No setup script for {interceptor_id} (searched: {', '.join(searched) or 'nothing'})"
        )
