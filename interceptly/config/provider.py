"""Configuration provider following Black Box Design principles."""
import os
from dataclasses import dataclass, field
from typing import List, Optional, Protocol


DEFAULT_STATE_DIR = os.path.join(os.path.expanduser("~"), ".interceptly")
DEFAULT_NO_PROXY = "localhost,127.0.0.1,::1"


@dataclass
class SetupServiceConfig:
    """Setup service (ephemeral listener) configuration."""
    host: str = "127.0.0.1"
    bind_attempts: int = 5
    pending_timeout: float = 600.0
    startup_timeout: float = 5.0

    @property
    def expires_pending(self) -> bool:
        """Check if abandoned pending sessions are expired at all."""
        return self.pending_timeout > 0


@dataclass
class InterceptorConfig:
    """Values rendered into bootstrap scripts and used for side effects."""
    proxy_host: str = "localhost"
    ca_cert_path: str = os.path.join(DEFAULT_STATE_DIR, "ca.pem")
    state_dir: str = DEFAULT_STATE_DIR
    no_proxy: List[str] = field(default_factory=lambda: DEFAULT_NO_PROXY.split(","))
    log_level: str = "INFO"

    @property
    def marker_dir(self) -> str:
        """Directory holding one marker file per active session."""
        return os.path.join(self.state_dir, "active")


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_setup_config(self) -> SetupServiceConfig:
        """Get setup service configuration."""
        ...

    def get_interceptor_config(self) -> InterceptorConfig:
        """Get interceptor configuration."""
        ...


def _int_env(name: str, default: str) -> int:
    value = os.getenv(name, default)
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


def _float_env(name: str, default: str) -> float:
    value = os.getenv(name, default)
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got {value!r}") from None


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_setup_config(self) -> SetupServiceConfig:
        """Get setup service configuration from environment variables."""
        bind_attempts = _int_env("SETUP_BIND_ATTEMPTS", "5")
        if bind_attempts < 1:
            raise ValueError("SETUP_BIND_ATTEMPTS must be at least 1")

        return SetupServiceConfig(
            host=os.getenv("SETUP_HOST", "127.0.0.1"),
            bind_attempts=bind_attempts,
            pending_timeout=max(_float_env("SETUP_PENDING_TIMEOUT", "600"), 0.0),
            startup_timeout=_float_env("SETUP_STARTUP_TIMEOUT", "5"),
        )

    def get_interceptor_config(self) -> InterceptorConfig:
        """Get interceptor configuration from environment variables."""
        state_dir = os.path.expanduser(os.getenv("INTERCEPTLY_STATE_DIR", DEFAULT_STATE_DIR))
        no_proxy = os.getenv("NO_PROXY_HOSTS", DEFAULT_NO_PROXY)

        return InterceptorConfig(
            proxy_host=os.getenv("PROXY_HOST", "localhost"),
            ca_cert_path=os.path.expanduser(
                os.getenv("CA_CERT_PATH") or os.path.join(state_dir, "ca.pem")
            ),
            state_dir=state_dir,
            no_proxy=[host.strip() for host in no_proxy.split(",") if host.strip()],
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


class StaticConfigProvider:
    """Provider returning fixed configuration objects, for embedding and tests."""

    def __init__(
        self,
        setup_config: Optional[SetupServiceConfig] = None,
        interceptor_config: Optional[InterceptorConfig] = None,
    ):
        self._setup_config = setup_config or SetupServiceConfig()
        self._interceptor_config = interceptor_config or InterceptorConfig()

    def get_setup_config(self) -> SetupServiceConfig:
        return self._setup_config

    def get_interceptor_config(self) -> InterceptorConfig:
        return self._interceptor_config
