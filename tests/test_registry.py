"""
Tests for the interceptor registry.
"""

import os
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from conftest import fetch
from interceptly.errors import InterceptorError, UnknownInterceptorError
from interceptly.modules.interceptors import (
    ExistingTerminalInterceptor,
    InterceptorRegistry,
)


def fake_interceptor(interceptor_id, activable=True):
    interceptor = MagicMock()
    interceptor.id = interceptor_id
    interceptor.is_activable.return_value = activable
    interceptor.deactivate_all = AsyncMock()
    return interceptor


class TestRegistryBuild:
    """Tests for building the registry."""

    def test_build_contains_all_variants(self, config_provider, session_registry):
        registry = InterceptorRegistry.build(config_provider, session_registry)

        assert len(registry) == 3
        assert "existing-terminal" in registry
        assert "existing-fish" in registry
        assert "existing-powershell" in registry

    def test_build_shares_session_registry(self, config_provider, session_registry):
        registry = InterceptorRegistry.build(config_provider, session_registry)

        for interceptor in registry.list_interceptors():
            assert interceptor.sessions is session_registry

    def test_build_creates_session_registry(self, config_provider):
        registry = InterceptorRegistry.build(config_provider)

        sessions = {id(i.sessions) for i in registry.list_interceptors()}
        assert len(sessions) == 1

    def test_duplicate_id_rejected(self):
        with pytest.raises(ValueError, match="Duplicate interceptor id"):
            InterceptorRegistry([fake_interceptor("a"), fake_interceptor("a")])


class TestRegistryLookup:
    """Tests for lookups and availability."""

    def test_get(self, config_provider, session_registry):
        registry = InterceptorRegistry.build(config_provider, session_registry)

        interceptor = registry.get("existing-terminal")

        assert isinstance(interceptor, ExistingTerminalInterceptor)

    def test_get_unknown(self):
        registry = InterceptorRegistry([fake_interceptor("a")])

        with pytest.raises(UnknownInterceptorError) as exc_info:
            registry.get("missing")

        assert str(exc_info.value) == "Unknown interceptor: missing"
        assert isinstance(exc_info.value, KeyError)
        assert isinstance(exc_info.value, InterceptorError)

    def test_available_filters_by_prerequisites(self):
        registry = InterceptorRegistry([fake_interceptor("a"), fake_interceptor("b", activable=False)])

        assert [i.id for i in registry.available()] == ["a"]

    def test_descriptors(self, config_provider, session_registry):
        registry = InterceptorRegistry.build(config_provider, session_registry)

        with patch("interceptly.modules.interceptors.base.shutil.which", return_value=None):
            data = [d.to_dict() for d in registry.descriptors()]

        assert [d["id"] for d in data] == ["existing-terminal", "existing-fish", "existing-powershell"]
        assert all(d["isActivable"] is False for d in data)


class TestRegistryDeactivateAll:
    """Tests for full teardown."""

    @pytest.mark.asyncio
    async def test_deactivate_all_fans_out(self):
        first, second = fake_interceptor("a"), fake_interceptor("b")
        registry = InterceptorRegistry([first, second])

        await registry.deactivate_all()

        first.deactivate_all.assert_awaited_once()
        second.deactivate_all.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_others(self):
        failing, healthy = fake_interceptor("a"), fake_interceptor("b")
        failing.deactivate_all.side_effect = RuntimeError("boom")
        registry = InterceptorRegistry([failing, healthy])

        await registry.deactivate_all()

        healthy.deactivate_all.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_deactivate_all_real_sessions(self, config_provider, session_registry, activable):
        registry = InterceptorRegistry.build(config_provider, session_registry)
        terminal = registry.get("existing-terminal")
        fish = registry.get("existing-fish")

        result = await terminal.activate(8000)
        await fetch(result.port)
        await fish.activate(8000)

        await registry.deactivate_all()

        assert len(session_registry) == 0
        assert terminal.is_active(8000) is False
