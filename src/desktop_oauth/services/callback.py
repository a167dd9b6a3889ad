"""Single-use loopback receiver for the authorization redirect.

Binds an ephemeral port on 127.0.0.1, serves exactly one GET on the redirect
URI path, answers it with a fixed completion page and shuts down.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from urllib.parse import urlparse

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse, Response
from starlette.routing import Route

from desktop_oauth.models.errors import (
    CallbackListenerError,
    CallbackTimeoutError,
    PortAllocationError,
)
from desktop_oauth.models.flow import CallbackResult

logger = logging.getLogger(__name__)

LOOPBACK_HOST = "127.0.0.1"
DEFAULT_CALLBACK_TIMEOUT = 300.0

COMPLETION_PAGE = (
    "<html><body><h2>Authentication complete</h2>"
    "<p>You can close this tab and return to the application.</p>"
    "</body></html>"
)
ALREADY_HANDLED_PAGE = (
    "<html><body><h2>This sign-in link has already been used</h2></body></html>"
)


def allocate_loopback_port(host: str = LOOPBACK_HOST) -> int:
    """Ask the OS for an unused port on the loopback interface.

    The probe socket is released immediately; only the port number is kept.
    Another process can claim the port before it is bound again, in which
    case binding the receiver fails with PortAllocationError.

    Raises:
        PortAllocationError: If no port can be bound
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as probe:
            probe.bind((host, 0))
            port = probe.getsockname()[1]
    except OSError as e:
        raise PortAllocationError(f"Cannot allocate loopback port: {e}") from e

    logger.debug(f"Allocated loopback port {port}")
    return port


def build_redirect_uri(port: int, host: str = LOOPBACK_HOST) -> str:
    return f"http://{host}:{port}/"


class LoopbackCallbackReceiver:
    """Serves one redirect on the loopback interface and then stops.

    Usage:
        async with LoopbackCallbackReceiver(redirect_uri) as receiver:
            open_browser(auth_url)
            result = await receiver.wait_for_callback(timeout=300)

    The listener is started on entry and stopped on exit, whatever happens
    in between, so the port is always released.
    """

    def __init__(self, redirect_uri: str, log_level: str = "warning") -> None:
        parsed = urlparse(redirect_uri)
        if parsed.scheme != "http" or not parsed.hostname or not parsed.port:
            raise ValueError(
                f"Redirect URI must be http://<host>:<port>/..., got {redirect_uri}"
            )

        self.redirect_uri = redirect_uri
        self.host = parsed.hostname
        self.port = parsed.port
        self.path = parsed.path or "/"
        self._log_level = log_level

        self._app = Starlette(
            routes=[Route(self.path, self._handle_callback, methods=["GET"])]
        )
        self._socket: socket.socket | None = None
        self._server: uvicorn.Server | None = None
        self._serve_task: asyncio.Task | None = None
        self._result: asyncio.Future[CallbackResult] | None = None
        self._used = False

    @property
    def is_running(self) -> bool:
        return self._serve_task is not None and not self._serve_task.done()

    async def __aenter__(self) -> LoopbackCallbackReceiver:
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def start(self) -> None:
        """Bind the redirect port and start serving.

        Raises:
            PortAllocationError: If the port is taken or cannot be bound
            RuntimeError: If the receiver has already been used
        """
        if self._used:
            raise RuntimeError("A callback receiver can only be started once")
        self._used = True

        self._socket = self._bind_socket()
        self._result = asyncio.get_running_loop().create_future()

        config = uvicorn.Config(
            app=self._app,
            log_level=self._log_level,
            log_config=None,
            lifespan="off",
            access_log=False,
            timeout_graceful_shutdown=5,
        )
        self._server = uvicorn.Server(config)
        self._serve_task = asyncio.create_task(self._server.serve(sockets=[self._socket]))

        while not self._server.started:
            if self._serve_task.done():
                self._release()
                raise PortAllocationError(
                    f"Callback listener failed to start on {self.host}:{self.port}"
                )
            await asyncio.sleep(0.01)

        logger.info(f"Listening for authorization callback on {self.redirect_uri}")

    async def wait_for_callback(
        self, timeout: float | None = DEFAULT_CALLBACK_TIMEOUT
    ) -> CallbackResult:
        """Suspend until the redirect arrives, then stop listening.

        Args:
            timeout: Seconds to wait, or None to wait indefinitely

        Returns:
            The raw query parameters of the redirect

        Raises:
            CallbackTimeoutError: If no redirect arrives within timeout
            CallbackListenerError: If the listener stops first
        """
        if self._result is None or self._serve_task is None:
            raise RuntimeError("Callback receiver has not been started")

        try:
            done, _ = await asyncio.wait(
                {self._result, self._serve_task},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
            if self._result in done:
                logger.debug("Authorization callback received")
                return self._result.result()
            if self._serve_task in done:
                raise CallbackListenerError(
                    "Callback listener stopped before the redirect arrived"
                )
            raise CallbackTimeoutError(
                f"No authorization callback received within {timeout} seconds"
            )
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop listening and release the port. Safe to call more than once."""
        if self._server is not None:
            self._server.should_exit = True
        if self._serve_task is not None and not self._serve_task.done():
            try:
                await self._serve_task
            except Exception as e:
                logger.warning(f"Callback listener shut down with error: {e}")
        self._release()

    def _release(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None
            logger.debug(f"Released loopback port {self.port}")
        if self._result is not None and not self._result.done():
            self._result.cancel()

    def _bind_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.bind((self.host, self.port))
        except OSError as e:
            sock.close()
            raise PortAllocationError(
                f"Cannot bind callback listener to {self.host}:{self.port}: {e}"
            ) from e
        return sock

    async def _handle_callback(self, request: Request) -> Response:
        """Capture the first redirect; anything racing in behind it is refused."""
        if request.method != "GET":
            return Response(status_code=405, headers={"Allow": "GET", "Connection": "close"})

        if self._result is None or self._result.done():
            return HTMLResponse(
                ALREADY_HANDLED_PAGE, status_code=410, headers={"Connection": "close"}
            )

        params: dict[str, str] = {}
        for key, value in request.query_params.multi_items():
            params.setdefault(key, value)

        self._result.set_result(CallbackResult.from_query_params(params))
        self._server.should_exit = True

        return HTMLResponse(COMPLETION_PAGE, headers={"Connection": "close"})


async def await_callback(
    redirect_uri: str, timeout: float | None = DEFAULT_CALLBACK_TIMEOUT
) -> CallbackResult:
    """Start a receiver on redirect_uri and wait for exactly one redirect."""
    async with LoopbackCallbackReceiver(redirect_uri) as receiver:
        return await receiver.wait_for_callback(timeout)
