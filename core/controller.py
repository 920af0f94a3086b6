"""
HTTP API controller: routing table, middleware mode, and listener lifecycle.

Typical use::

    controller = Controller(auth_callback=verify_token)
    controller.add_handler("/items", list_items, ["GET"])
    controller.run("127.0.0.1:8080")   # blocks until stop() is called elsewhere
"""

import enum
import socket
import threading
from collections.abc import Callable, Iterable, Sequence
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.types import ASGIApp

from core.config import Settings, get_settings
from core.errors import ListenerError
from core.middleware import BearerAuthMiddleware, MiddlewareStage, build_middleware_stack
from core.security import AuthCallback
from models.schemas import RouteEntry
from utils.logging import get_logger
from utils.validators import parse_address

logger = get_logger(__name__)

# Extra time stop() waits for run() to unwind after the grace period
_STOP_MARGIN_SECONDS = 1.0


class MiddlewareMode(enum.Enum):
    DEFAULT_AUTH = "default_auth"
    CUSTOM_CHAIN = "custom_chain"


class Controller:
    """Owns the routes, the middleware configuration and at most one running listener."""

    def __init__(
        self,
        auth_callback: AuthCallback | None = None,
        middleware: Sequence[MiddlewareStage] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.auth_callback = auth_callback
        self.settings = settings or get_settings()
        self._routes: list[RouteEntry] = []
        self._middleware: tuple[MiddlewareStage, ...] = ()
        self._mode = MiddlewareMode.DEFAULT_AUTH
        if middleware is not None:
            self._middleware = tuple(middleware)
            self._mode = MiddlewareMode.CUSTOM_CHAIN

        self._lock = threading.Lock()
        self._server: uvicorn.Server | None = None
        self._stopped = threading.Event()
        self._stopped.set()
        self._stop_requested = False
        self._serving_thread: int | None = None
        self._bound_address: tuple[str, int] | None = None

    @property
    def routes(self) -> tuple[RouteEntry, ...]:
        return tuple(self._routes)

    @property
    def middleware_mode(self) -> MiddlewareMode:
        return self._mode

    @property
    def running(self) -> bool:
        """True once the listener has finished startup and until it stops."""
        server = self._server
        return server is not None and server.started and not self._stopped.is_set()

    @property
    def bound_address(self) -> tuple[str, int] | None:
        """(host, port) actually bound by the current listener; resolves port 0."""
        return self._bound_address

    def add_handler(
        self,
        path: str,
        handler: Callable[..., Any],
        methods: str | Iterable[str],
        name: str | None = None,
    ) -> RouteEntry:
        """
        Register handler for path and methods. Raises ValueError on an empty
        or invalid method list or a path not starting with '/'.
        """
        entry = RouteEntry(path=path, methods=methods, handler=handler, name=name)
        self._routes.append(entry)
        if self._server is not None:
            logger.warning(
                "route_added_while_running",
                extra={"path": path, "methods": list(entry.methods)},
            )
        return entry

    def set_middleware(self, *middleware: MiddlewareStage) -> None:
        """Replace the built-in bearer auth with a caller-supplied chain, outermost first."""
        self._middleware = tuple(middleware)
        self._mode = MiddlewareMode.CUSTOM_CHAIN

    def build_app(self) -> ASGIApp:
        """
        Compose routing and middleware into one ASGI app without binding a socket.

        The chain wraps the whole app, unlike a router hook that only runs on
        matched routes: with auth enabled an unmatched path is answered 400
        rather than 404/405 when the bearer header is missing.
        """
        app = self._create_router_app()
        if self._mode is MiddlewareMode.DEFAULT_AUTH:
            return BearerAuthMiddleware(
                app,
                auth_callback=self.auth_callback,
                failure_status=self.settings.AUTH_FAILURE_STATUS,
            )
        return build_middleware_stack(app, self._middleware)

    def run(self, address: str) -> None:
        """
        Listen on address ("host:port", ":port" or "[v6]:port") and serve
        until stop() is called or the listener fails.

        Raises ListenerError if the address is invalid, the socket cannot be
        bound, or the server fails to start. Never returns early on success.
        """
        try:
            host, port = parse_address(address)
        except ValueError as exc:
            raise ListenerError(str(exc), address=address) from exc

        with self._lock:
            if self._server is not None:
                raise ListenerError("Controller is already running", address=address)
            sock = self._bind(host, port, address)
            config = uvicorn.Config(
                self.build_app(),
                log_level=self.settings.LOG_LEVEL.lower(),
                timeout_graceful_shutdown=self.settings.SHUTDOWN_GRACE_SECONDS,
            )
            server = uvicorn.Server(config)
            self._server = server
            self._stop_requested = False
            self._stopped.clear()
            self._serving_thread = threading.get_ident()
            self._bound_address = sock.getsockname()[:2]

        bound_host, bound_port = self._bound_address
        logger.info("Running at http://%s:%s", bound_host, bound_port)
        logger.info("listener_start", extra={"host": bound_host, "port": bound_port})
        try:
            server.run(sockets=[sock])
            if not server.started and not self._stop_requested:
                raise ListenerError("Listener failed to start", address=address)
        finally:
            sock.close()
            with self._lock:
                # A timed-out stop() may have let a newer run() take over
                if self._server is server or self._server is None:
                    self._server = None
                    self._serving_thread = None
                    self._bound_address = None
                    self._stopped.set()
            logger.info("listener_stopped", extra={"host": bound_host, "port": bound_port})

    def stop(self) -> None:
        """
        Gracefully stop the listener. New connections are refused at once;
        in-flight requests get SHUTDOWN_GRACE_SECONDS to finish before they
        are cancelled. No-op when nothing is running.
        """
        with self._lock:
            server = self._server
            if server is None:
                return
            self._stop_requested = True
            server.should_exit = True
            same_thread = self._serving_thread == threading.get_ident()

        if same_thread:
            # Called from inside a handler; run() unwinds once the request completes
            return
        timeout = self.settings.SHUTDOWN_GRACE_SECONDS + _STOP_MARGIN_SECONDS
        if not self._stopped.wait(timeout):
            logger.error("shutdown_timeout", extra={"timeout_seconds": timeout})
            server.force_exit = True
            with self._lock:
                if self._server is server:
                    self._server = None

    def _bind(self, host: str, port: int, address: str) -> socket.socket:
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, port))
        except OSError as exc:
            sock.close()
            logger.error(
                "listener_bind_failed",
                extra={"address": address, "error": str(exc)},
            )
            raise ListenerError(f"Cannot listen on {address}: {exc}", address=address) from exc
        return sock

    def _create_router_app(self) -> FastAPI:
        settings = self.settings
        routes = tuple(self._routes)

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            logger.info("startup", extra={"app": settings.APP_NAME, "routes": len(routes)})
            yield
            logger.info("shutdown", extra={"app": settings.APP_NAME})

        app = FastAPI(
            title=settings.APP_NAME,
            docs_url="/docs" if settings.DEBUG else None,
            redoc_url=None,
            openapi_url="/openapi.json" if settings.DEBUG else None,
            lifespan=lifespan,
        )
        # Handlers depending on get_settings see this controller's settings
        app.dependency_overrides[get_settings] = lambda: settings
        for entry in routes:
            app.add_api_route(entry.path, entry.handler, methods=list(entry.methods), name=entry.name)

        @app.exception_handler(Exception)
        async def unhandled_exception_handler(request: Request, exc: Exception):
            logger.exception("unhandled_exception", extra={"path": request.url.path})
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal server error"},
            )

        return app
