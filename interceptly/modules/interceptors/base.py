"""
Shared mechanics for interceptors that bootstrap through a setup script.

An activation creates a pending session and a one-shot SetupService. The
target environment fetches GET /setup itself (for example by evaluating a
curl command in a shell); that request is the confirmation. Nothing after
the fetch is observable, so "request received" is treated as "active".
"""

import asyncio
import json
import logging
import os
import shutil
from typing import Any, Dict, Optional, Tuple

from ...config.provider import ConfigProvider
from ...errors import NotActivableError, ResourceExhaustedError
from ..scripts import render_script
from ..session import Session, SessionRegistry, SessionState
from ..setup import SETUP_PATH, SetupService
from .interfaces import ActivationResult, InterceptorDescriptor

logger = logging.getLogger("interceptly.interceptors")


def _validate_port(port: int) -> int:
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
        raise ValueError(f"Invalid proxy port: {port!r}")
    return port


class SetupScriptInterceptor:
    """
    Base class for interceptor variants.

    Subclasses set the identity attributes, the binaries they need, and
    how to phrase the command that fetches the setup script. The script
    content itself comes from the scripts module.
    """

    id: str = ""
    name: str = ""
    description: str = ""

    # Each group is satisfied by any one of its binaries; every group is required
    required_binaries: Tuple[Tuple[str, ...], ...] = ()

    def __init__(self, session_registry: SessionRegistry, config_provider: ConfigProvider):
        """
        Initialize interceptor.

        Args:
            session_registry: Process-wide session registry
            config_provider: Source of setup and interceptor configuration
        """
        self.sessions = session_registry
        self.setup_config = config_provider.get_setup_config()
        self.config = config_provider.get_interceptor_config()

        self._services: Dict[int, SetupService] = {}
        self._expiry_tasks: Dict[int, asyncio.Task] = {}

    def descriptor(self) -> InterceptorDescriptor:
        return InterceptorDescriptor(
            id=self.id,
            name=self.name,
            description=self.description,
            is_activable=self.is_activable,
        )

    def is_activable(self) -> bool:
        return all(
            any(shutil.which(binary) for binary in group) for group in self.required_binaries
        )

    def setup_command(self, setup_url: str) -> str:
        """Command the target environment runs to fetch and apply the script."""
        raise NotImplementedError

    def setup_url(self, ephemeral_port: int) -> str:
        host = self.setup_config.host
        if host in ("", "0.0.0.0"):
            host = "localhost"
        return f"http://{host}:{ephemeral_port}{SETUP_PATH}"

    def marker_path(self, target_proxy_port: int) -> str:
        return os.path.join(self.config.marker_dir, f"{self.id}-{target_proxy_port}")

    def script_variables(self, session: Session) -> Dict[str, str]:
        """Values substituted into this interceptor's script template."""
        no_proxy = list(self.config.no_proxy)
        for host in session.options.get("no_proxy", []):
            if host not in no_proxy:
                no_proxy.append(host)

        return {
            "proxy_url": f"http://{self.config.proxy_host}:{session.target_proxy_port}",
            "proxy_port": str(session.target_proxy_port),
            "ca_cert_path": self.config.ca_cert_path,
            "no_proxy": ",".join(no_proxy),
            "marker_path": self.marker_path(session.target_proxy_port),
            "setup_port": str(session.ephemeral_port),
        }

    def render_payload(self, session: Session) -> str:
        return render_script(self.id, self.script_variables(session), state_dir=self.config.state_dir)

    def _result(self, session: Session) -> ActivationResult:
        url = self.setup_url(session.ephemeral_port)
        return ActivationResult(port=session.ephemeral_port, setup_url=url, command=self.setup_command(url))

    def is_active(self, target_proxy_port: int) -> bool:
        return self.sessions.is_active(self.id, target_proxy_port)

    async def activate(
        self, target_proxy_port: int, options: Optional[Dict[str, Any]] = None
    ) -> ActivationResult:
        """
        Create a pending session and start its setup service.

        Args:
            target_proxy_port: Port of the proxy to adopt
            options: Optional activation options (``no_proxy``: extra hosts)

        Returns:
            ActivationResult with the ephemeral port and the setup command

        Raises:
            NotActivableError: If the environment prerequisites are missing
            ResourceExhaustedError: If no setup listener could be started
        """
        port = _validate_port(target_proxy_port)

        if not self.is_activable():
            binaries = " and ".join("/".join(group) for group in self.required_binaries)
            logger.warning(f"Refusing to activate {self.id}: {binaries} not found on PATH")
            raise NotActivableError(self.id, f"{binaries} not found on PATH")

        async with self.sessions.lock_for(self.id, port):
            existing = self.sessions.get_session(self.id, port)
            if existing is not None:
                logger.info(
                    f"{self.id} already {existing.state.value} for proxy port {port} "
                    f"(setup port {existing.ephemeral_port})"
                )
                return self._result(existing)

            service: Optional[SetupService] = None

            async def on_setup() -> Optional[str]:
                return await self._confirm(port, service)

            service = SetupService(
                on_setup,
                host=self.setup_config.host,
                bind_attempts=self.setup_config.bind_attempts,
                startup_timeout=self.setup_config.startup_timeout,
                name=self.id,
            )
            ephemeral_port = await service.start(excluded_ports=self.sessions.ephemeral_ports() | {port})

            try:
                session = self.sessions.create_session(self.id, port, ephemeral_port, options)
            except ValueError as e:
                await service.close()
                logger.error(f"Could not register {self.id} session for proxy port {port}: {e}")
                raise ResourceExhaustedError(str(e)) from e

            self._services[port] = service
            self._schedule_expiry(port, ephemeral_port)

        logger.info(f"{self.id} pending for proxy port {port}, setup on port {ephemeral_port}")
        return self._result(session)

    async def _confirm(self, target_proxy_port: int, service: SetupService) -> Optional[str]:
        """Render the payload and flip the session to active. Runs once per setup hit."""
        async with self.sessions.lock_for(self.id, target_proxy_port):
            session = self.sessions.get_session(self.id, target_proxy_port)
            if (
                session is None
                or session.state != SessionState.PENDING
                or session.ephemeral_port != service.port
            ):
                return None

            payload = self.render_payload(session)
            self.sessions.confirm_session(self.id, target_proxy_port, service.port)
            self._cancel_expiry(target_proxy_port)
            self.on_confirmed(session)

        logger.info(f"{self.id} activated for proxy port {target_proxy_port}")
        return payload

    async def deactivate(self, target_proxy_port: int) -> None:
        async with self.sessions.lock_for(self.id, target_proxy_port):
            await self._terminate(target_proxy_port)

    async def deactivate_all(self) -> None:
        ports = {session.target_proxy_port for session in self.sessions.get_sessions(self.id)}
        ports.update(self._services)
        await asyncio.gather(*(self.deactivate(port) for port in ports))

    async def _terminate(self, target_proxy_port: int) -> None:
        """Close the listener, reverse side effects, erase the session. Caller holds the key lock."""
        self._cancel_expiry(target_proxy_port)

        service = self._services.pop(target_proxy_port, None)
        if service is not None:
            await service.close()

        session = self.sessions.end_session(self.id, target_proxy_port)
        if session is None:
            return

        self.on_terminated(session)
        logger.info(f"{self.id} deactivated for proxy port {target_proxy_port}")

    def _schedule_expiry(self, target_proxy_port: int, ephemeral_port: int) -> None:
        if not self.setup_config.expires_pending:
            return
        self._expiry_tasks[target_proxy_port] = asyncio.create_task(
            self._expire_pending(target_proxy_port, ephemeral_port),
            name=f"{self.id}-expire-{target_proxy_port}",
        )

    def _cancel_expiry(self, target_proxy_port: int) -> None:
        task = self._expiry_tasks.pop(target_proxy_port, None)
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def _expire_pending(self, target_proxy_port: int, ephemeral_port: int) -> None:
        await asyncio.sleep(self.setup_config.pending_timeout)

        async with self.sessions.lock_for(self.id, target_proxy_port):
            session = self.sessions.get_session(self.id, target_proxy_port)
            if (
                session is None
                or session.state != SessionState.PENDING
                or session.ephemeral_port != ephemeral_port
            ):
                return

            logger.warning(
                f"{self.id} setup for proxy port {target_proxy_port} was not fetched within "
                f"{self.setup_config.pending_timeout:g}s, cancelling"
            )
            await self._terminate(target_proxy_port)

    def on_confirmed(self, session: Session) -> None:
        """Record the activation so already-configured shells can notice its end."""
        path = self.marker_path(session.target_proxy_port)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(session.to_dict(), f, default=str)
        except OSError as e:
            logger.warning(f"Failed to write activation marker {path}: {e}")

    def on_terminated(self, session: Session) -> None:
        """Best-effort reversal: a shell that sourced the script unsets its proxy variables on its next prompt."""
        path = self.marker_path(session.target_proxy_port)
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove activation marker {path}: {e}")
