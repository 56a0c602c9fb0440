"""Request id propagation and mapping of errors to JSON responses."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.logging import get_logger, request_id_var
from app.services.openclaw.errors import OrchestratorError

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

REQUEST_ID_HEADER = "X-Request-Id"
_REQUEST_ID_HEADER_BYTES = REQUEST_ID_HEADER.lower().encode("latin-1")
logger = get_logger(__name__)


class RequestIdMiddleware:
    """Reuse the caller's request id or mint one, and echo it on the response."""

    def __init__(self, app: ASGIApp) -> None:
        self._app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self._app(scope, receive, send)
            return

        request_id = self._incoming_request_id(scope) or uuid4().hex
        scope.setdefault("state", {})["request_id"] = request_id
        token = request_id_var.set(request_id)

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers") or [])
                if not any(key.lower() == _REQUEST_ID_HEADER_BYTES for key, _ in headers):
                    headers.append((_REQUEST_ID_HEADER_BYTES, request_id.encode("latin-1")))
                    message["headers"] = headers
            await send(message)

        try:
            await self._app(scope, receive, send_with_request_id)
        finally:
            request_id_var.reset(token)

    @staticmethod
    def _incoming_request_id(scope: Scope) -> str | None:
        for key, value in scope.get("headers") or []:
            if key.lower() == _REQUEST_ID_HEADER_BYTES:
                candidate = value.decode("latin-1").strip()
                if candidate:
                    return candidate
        return None


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _validation_message(exc: RequestValidationError) -> str:
    fields: list[str] = []
    for error in exc.errors():
        location: Any = error.get("loc") or ()
        parts = [str(part) for part in location if part != "body"]
        if parts:
            fields.append(".".join(parts))
    if fields:
        return f"Invalid request body: {', '.join(fields)}"
    return "Invalid request body"


async def _handle_orchestrator_error(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, OrchestratorError)  # noqa: S101
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(
            "api.error path=%s error_type=%s error=%s",
            request.url.path,
            exc.__class__.__name__,
            exc.message,
        )
    else:
        logger.info(
            "api.rejected path=%s status=%s error=%s",
            request.url.path,
            exc.status_code,
            exc.message,
        )
    return _error_response(exc.status_code, exc.message)


async def _handle_validation_error(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, RequestValidationError)  # noqa: S101
    message = _validation_message(exc)
    logger.info("api.rejected path=%s status=400 error=%s", request.url.path, message)
    return _error_response(status.HTTP_400_BAD_REQUEST, message)


async def _handle_http_exception(_: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, StarletteHTTPException)  # noqa: S101
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("api.unhandled_error path=%s", request.url.path)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        str(exc) or exc.__class__.__name__,
    )


def install_error_handling(app: FastAPI) -> None:
    """Register request id middleware and JSON error handlers on ``app``."""
    app.add_middleware(RequestIdMiddleware)
    app.add_exception_handler(OrchestratorError, _handle_orchestrator_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    app.add_exception_handler(Exception, _handle_unexpected_error)
