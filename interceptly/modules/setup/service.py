"""
Setup Service - one-shot confirmation listener.

Each activation attempt gets its own SetupService: a FastAPI application
with a single GET /setup route, served by uvicorn on a freshly bound
ephemeral port. The first successful hit on /setup is the only
confirmation signal the manager ever receives, so the listener unbinds
itself as soon as it has been served. Cancelling a pending attempt
unbinds it too, which makes any later request fail at connection level.
"""

import asyncio
import contextlib
import logging
import socket
from typing import Awaitable, Callable, Iterable, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from ...errors import ResourceExhaustedError

logger = logging.getLogger("interceptly.setup")

SETUP_PATH = "/setup"

# Called on the first /setup hit. Returns the payload to serve, or None if
# there is no longer a pending session to confirm.
SetupHandler = Callable[[], Awaitable[Optional[str]]]


class _SetupServer(uvicorn.Server):
    """uvicorn server that leaves process signal handling to its owner."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class SetupService:
    """
    Short-lived listener serving a single bootstrap payload.

    Lifecycle: start() binds and serves, the first /setup request is
    confirmed and stops the listener, close() releases everything and is
    safe to call at any point and more than once.
    """

    def __init__(
        self,
        on_setup: SetupHandler,
        host: str = "127.0.0.1",
        bind_attempts: int = 5,
        startup_timeout: float = 5.0,
        name: str = "setup",
    ):
        """
        Initialize setup service.

        Args:
            on_setup: Async callback rendering the payload and confirming
                the session
            host: Local address to bind
            bind_attempts: Fresh port choices to try before giving up
            startup_timeout: Seconds to wait for uvicorn to start or stop
            name: Label used in log messages
        """
        self._on_setup = on_setup
        self.host = host
        self.bind_attempts = bind_attempts
        self.startup_timeout = startup_timeout
        self.name = name

        self.port: Optional[int] = None
        self._socket: Optional[socket.socket] = None
        self._server: Optional[_SetupServer] = None
        self._task: Optional[asyncio.Task] = None
        self._served = False
        self._closed = False

    @property
    def is_listening(self) -> bool:
        """True while the ephemeral port can still accept a confirmation."""
        return self._server is not None and not self._closed and not self._served

    @property
    def confirmed(self) -> bool:
        return self._served

    def _bind_socket(self, excluded_ports: Iterable[int]) -> socket.socket:
        """
        Bind a listening socket on an OS-assigned port.

        Retries with a fresh port while binding fails or the assigned port
        is one the caller excluded (the target proxy port, or a port a live
        session still holds).
        """
        excluded = set(excluded_ports)
        last_error: Optional[Exception] = None

        for attempt in range(1, self.bind_attempts + 1):
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            try:
                sock.bind((self.host, 0))
            except OSError as e:
                sock.close()
                last_error = e
                logger.warning(f"{self.name}: bind attempt {attempt} failed: {e}")
                continue

            port = sock.getsockname()[1]
            if port in excluded:
                sock.close()
                logger.debug(f"{self.name}: port {port} is reserved, choosing another")
                continue

            return sock

        raise ResourceExhaustedError(
            f"Could not bind a setup port for {self.name} after "
            f"{self.bind_attempts} attempts" + (f": {last_error}" if last_error else "")
        )

    def _build_app(self) -> FastAPI:
        app = FastAPI(
            title=f"Interceptly {self.name} setup",
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
            redirect_slashes=False,
        )

        @app.get(SETUP_PATH, response_class=PlainTextResponse)
        async def setup() -> Response:
            return await self._handle_setup()

        @app.exception_handler(StarletteHTTPException)
        async def not_found_handler(request: Request, exc: StarletteHTTPException):
            # Only one route exists; unknown paths and methods all look the same
            return PlainTextResponse("Not Found", status_code=404)

        return app

    async def _handle_setup(self) -> Response:
        if self._served or self._closed:
            return PlainTextResponse("Not Found", status_code=404)

        # Claimed before any await so a concurrent request cannot confirm twice
        self._served = True
        try:
            payload = await self._on_setup()
        except Exception:
            self._served = False
            raise

        if payload is None:
            logger.info(f"{self.name}: setup requested on port {self.port} with no pending session")
            self._stop_listening()
            return PlainTextResponse("Not Found", status_code=404)

        self._stop_listening()
        logger.info(f"{self.name}: setup served on port {self.port}, listener closed")
        return PlainTextResponse(payload, headers={"Connection": "close"})

    async def start(self, excluded_ports: Iterable[int] = ()) -> int:
        """
        Bind an ephemeral port and start serving.

        Args:
            excluded_ports: Ports that must not be chosen

        Returns:
            The ephemeral port now accepting GET /setup

        Raises:
            ResourceExhaustedError: If no port could be bound or the server
                failed to start in time
        """
        if self._task is not None:
            raise RuntimeError(f"{self.name}: setup service already started")

        sock = self._bind_socket(excluded_ports)
        self._socket = sock
        self.port = sock.getsockname()[1]

        config = uvicorn.Config(
            self._build_app(),
            # Setup servers come and go; they must not touch process-wide
            # logger configuration. Lifecycle noise is filtered in logging_config.
            log_config=None,
            log_level=None,
            lifespan="off",
        )
        self._server = _SetupServer(config)
        self._task = asyncio.create_task(
            self._server.serve(sockets=[sock]), name=f"{self.name}-setup-{self.port}"
        )
        self._task.add_done_callback(self._log_exit)

        try:
            await asyncio.wait_for(self._wait_started(), timeout=self.startup_timeout)
        except Exception as e:
            await self.close()
            logger.error(f"{self.name}: setup server failed to start: {e}")
            raise ResourceExhaustedError(f"Setup server for {self.name} failed to start: {e}") from e

        logger.debug(f"{self.name}: setup server listening on {self.host}:{self.port}")
        return self.port

    async def _wait_started(self) -> None:
        while not self._server.started:
            if self._task.done():
                exc = self._task.exception()
                raise RuntimeError(f"server exited during startup: {exc}")
            await asyncio.sleep(0.01)

    def _stop_listening(self, force: bool = False) -> None:
        """
        Unbind the listening socket now.

        Without force, uvicorn finishes in-flight responses before exiting.
        With force, it drops them; cancellation uses this so a setup request
        waiting on the session lock cannot hold up the caller that owns it.
        """
        if self._server is not None:
            for server in self._server.servers:
                server.close()
            self._server.should_exit = True
            if force:
                self._server.force_exit = True
        # uvicorn owns the raw socket until its task ends
        if self._socket is not None and (self._task is None or self._task.done()):
            self._socket.close()

    async def close(self) -> None:
        """
        Release the listener and wait for the server task to finish.

        The port refuses connections once this returns, whether or not the
        setup endpoint was ever hit.
        """
        if self._closed:
            return
        self._closed = True
        self._stop_listening(force=True)

        if self._task is not None and not self._task.done():
            try:
                await asyncio.wait_for(self._task, timeout=self.startup_timeout)
            except asyncio.TimeoutError:
                logger.warning(f"{self.name}: setup server on port {self.port} did not stop in time")
            except Exception as e:
                logger.warning(f"{self.name}: setup server on port {self.port} exited with error: {e}")

        # A close racing startup can leave servers created after the first pass
        self._stop_listening(force=True)
        logger.debug(f"{self.name}: setup server on port {self.port} closed")

    def _log_exit(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"{self.name}: setup server on port {self.port} crashed: {exc}")
