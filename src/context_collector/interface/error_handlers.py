"""Global exception handlers — translate domain errors to HTTP responses.

Every failure path answers with the ``{"status": "error", "message": "..."}``
envelope.  Only two domain errors can escape a request: an unavailable
project root (404) and a rejected budget (422).
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from context_collector.domain.exceptions import (
    ContextCollectorError,
    InvalidBudgetError,
    RootUnavailableError,
)
from context_collector.interface.schemas import ErrorResponse

logger = logging.getLogger(__name__)

# Most specific first; Starlette resolves handlers along the exception MRO.
_EXCEPTION_STATUS: list[tuple[type[ContextCollectorError], int]] = [
    (RootUnavailableError, 404),
    (InvalidBudgetError, 422),
    (ContextCollectorError, 500),
]


def _error_json(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message).model_dump(),
    )


def _domain_handler(status_code: int):  # type: ignore[no-untyped-def]
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        logger.warning(
            "%s %s failed with %s: %s",
            request.method,
            request.url.path,
            type(exc).__name__,
            exc,
        )
        return _error_json(status_code, str(exc))

    return handler


def _format_validation_errors(exc: RequestValidationError) -> str:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", []) if p != "body")
        messages.append(f"{loc or 'body'}: {err.get('msg', 'validation error')}")
    return "; ".join(messages)


def register_error_handlers(app: FastAPI) -> None:
    """Attach exception handlers to the FastAPI application."""
    for exc_type, code in _EXCEPTION_STATUS:
        app.add_exception_handler(exc_type, _domain_handler(code))

    @app.exception_handler(RequestValidationError)
    async def validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return _error_json(422, _format_validation_errors(exc))

    @app.exception_handler(Exception)
    async def generic_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return _error_json(500, "An unexpected error occurred.")
