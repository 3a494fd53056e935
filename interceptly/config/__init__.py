from .provider import (
    ConfigProvider,
    EnvConfigProvider,
    InterceptorConfig,
    SetupServiceConfig,
    StaticConfigProvider,
)

__all__ = [
    "ConfigProvider",
    "EnvConfigProvider",
    "InterceptorConfig",
    "SetupServiceConfig",
    "StaticConfigProvider",
]
