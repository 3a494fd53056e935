"""
Shared pytest fixtures for Interceptly tests.

This module provides common fixtures including:
- Static configuration pointing at a temporary state directory
- A fresh session registry per test
- Interceptors whose environment prerequisites are forced on
- fetch(): a plain HTTP client for hitting setup endpoints
"""

import os
import sys

import httpx
import pytest
import pytest_asyncio

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from interceptly.config.provider import (
    InterceptorConfig,
    SetupServiceConfig,
    StaticConfigProvider,
)
from interceptly.modules.interceptors import ExistingTerminalInterceptor, SetupScriptInterceptor
from interceptly.modules.session import SessionRegistry

TEST_CA_CERT = """-----BEGIN CERTIFICATE-----
MIIBszCCAVmgAwIBAgIUQ2VydGlmaWNhdGUgZm9yIHRlc3RzMAoGCCqGSM49BAMC
-----END CERTIFICATE-----
"""


# =============================================================================
# HTTP helpers
# =============================================================================

async def fetch(port: int, path: str = "/setup", method: str = "GET") -> httpx.Response:
    """
    Request a path on a local setup port with a fresh connection.

    Proxy environment variables are ignored so a developer's own proxy
    settings never leak into the tests.
    """
    async with httpx.AsyncClient(timeout=5.0, trust_env=False) as client:
        return await client.request(method, f"http://127.0.0.1:{port}{path}")


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture
def interceptor_config(tmp_path) -> InterceptorConfig:
    """Interceptor configuration rooted in a per-test temporary directory."""
    ca_cert = tmp_path / "ca.pem"
    ca_cert.write_text(TEST_CA_CERT)
    return InterceptorConfig(
        proxy_host="localhost",
        ca_cert_path=str(ca_cert),
        state_dir=str(tmp_path / "state"),
    )


@pytest.fixture
def setup_config() -> SetupServiceConfig:
    """Setup configuration with the grace period disabled."""
    return SetupServiceConfig(host="127.0.0.1", bind_attempts=5, pending_timeout=0, startup_timeout=5.0)


@pytest.fixture
def config_provider(setup_config, interceptor_config) -> StaticConfigProvider:
    return StaticConfigProvider(setup_config, interceptor_config)


# =============================================================================
# Sessions and interceptors
# =============================================================================

@pytest.fixture
def session_registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def activable(monkeypatch):
    """Pretend every interceptor's required binaries are installed."""
    monkeypatch.setattr(SetupScriptInterceptor, "is_activable", lambda self: True)


@pytest_asyncio.fixture
async def terminal_interceptor(session_registry, config_provider, activable):
    """Existing-terminal interceptor, fully deactivated after each test."""
    interceptor = ExistingTerminalInterceptor(session_registry, config_provider)
    yield interceptor
    await interceptor.deactivate_all()


@pytest.fixture
def proxy_port() -> int:
    return 8000


# =============================================================================
# Test Markers Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: Tests that run a real shell against a setup service"
    )
