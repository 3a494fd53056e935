"""
Interceptors Module - Black Box Interface

Purpose: Make one kind of client environment start and stop using the proxy
Interface: is_activable(), activate(), is_active(), deactivate(), deactivate_all()
Hidden: Setup service orchestration, script rendering, side effects

Each variant is replaceable; the registry only relies on the Interceptor protocol.
"""

from .base import SetupScriptInterceptor
from .interfaces import ActivationResult, Interceptor, InterceptorDescriptor
from .registry import INTERCEPTOR_TYPES, InterceptorRegistry
from .terminal import (
    ExistingFishInterceptor,
    ExistingPowerShellInterceptor,
    ExistingTerminalInterceptor,
)

__all__ = [
    "ActivationResult",
    "ExistingFishInterceptor",
    "ExistingPowerShellInterceptor",
    "ExistingTerminalInterceptor",
    "INTERCEPTOR_TYPES",
    "Interceptor",
    "InterceptorDescriptor",
    "InterceptorRegistry",
    "SetupScriptInterceptor",
]
