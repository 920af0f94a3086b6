"""
Middleware: bearer-token authentication and explicit chain composition.

A middleware stage is a dispatch callable ``async (request, call_next) -> Response``
or a BaseHTTPMiddleware subclass. Each stage either returns a response itself
(short-circuit) or awaits call_next to forward downstream.
"""

import inspect
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from core.config import get_settings
from core.security import (
    AuthCallback,
    is_safe_for_log,
    parse_bearer,
    redact_token,
    split_authorization,
)
from models.schemas import ErrorDetail
from utils.logging import get_logger
from utils.validators import clean_header_value

logger = get_logger(__name__)

ID_HEADER = "X-ID"
ERROR_HEADER = "X-Error"
SCHEME_ERROR = "Only Authorization: Bearer Allowed"

CallNext = Callable[[Request], Awaitable[Response]]
DispatchFunction = Callable[[Request, CallNext], Awaitable[Response]]
MiddlewareStage = DispatchFunction | type[BaseHTTPMiddleware]


class BearerAuthMiddleware(BaseHTTPMiddleware):
    """
    Verifies ``Authorization: Bearer <token>`` with a caller-supplied callback.

    Without a callback every request is forwarded untouched. With one, a wrong
    or missing scheme is rejected with 400 and a failing callback with
    ``failure_status`` (500 unless configured). A verified identity is put on
    ``request.state.identity`` and echoed in the X-ID response header.
    """

    def __init__(
        self,
        app: ASGIApp,
        auth_callback: AuthCallback | None = None,
        failure_status: int | None = None,
    ) -> None:
        super().__init__(app)
        self.auth_callback = auth_callback
        self.failure_status = failure_status or get_settings().AUTH_FAILURE_STATUS

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        if self.auth_callback is None:
            return await call_next(request)

        header = request.headers.get("Authorization")
        token = parse_bearer(header)
        if token is None:
            scheme, _ = split_authorization(header)
            logger.info(
                "auth_rejected",
                extra={"path": request.url.path, "scheme": is_safe_for_log(scheme, max_length=32)},
            )
            return _reject(400, SCHEME_ERROR)

        try:
            identity = await self._verify(token)
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            logger.warning(
                "auth_verifier_failed",
                extra={"path": request.url.path, "token": redact_token(token), "error": message},
            )
            return _reject(self.failure_status, message)
        if identity is None:
            logger.warning(
                "auth_verifier_failed",
                extra={"path": request.url.path, "token": redact_token(token), "error": "no identity"},
            )
            return _reject(self.failure_status, "Token verification failed")

        identity = str(identity)
        request.state.identity = identity
        response = await call_next(request)
        response.headers.setdefault(ID_HEADER, clean_header_value(identity))
        return response

    async def _verify(self, token: str) -> Any:
        verify = getattr(self.auth_callback, "verify", self.auth_callback)
        if inspect.iscoroutinefunction(verify):
            return await verify(token)
        # Sync verifiers may block on I/O; keep them off the event loop
        result = await run_in_threadpool(verify, token)
        if inspect.isawaitable(result):
            result = await result
        return result


def _reject(status_code: int, message: str) -> JSONResponse:
    message = clean_header_value(message)
    return JSONResponse(
        status_code=status_code,
        content=ErrorDetail(detail=message).model_dump(),
        headers={ID_HEADER: "", ERROR_HEADER: message},
    )


def build_middleware_stack(app: ASGIApp, stages: Sequence[MiddlewareStage]) -> ASGIApp:
    """
    Wrap app in the given stages. The first stage is the outermost, so it
    sees the request first and the response last.
    """
    for stage in reversed(stages):
        if isinstance(stage, type) and issubclass(stage, BaseHTTPMiddleware):
            app = stage(app)
        elif callable(stage):
            app = BaseHTTPMiddleware(app, dispatch=stage)
        else:
            raise TypeError(f"Middleware stage must be callable, got {stage!r}")
    return app
