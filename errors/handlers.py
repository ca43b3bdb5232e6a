"""
FastAPI exception handlers for the healthz app.

Anything a route raises is rendered as an ErrorResponse body. Known
AppExceptions keep their code and status; anything else becomes a generic
500 whose details stay in the log.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from errors.codes import ErrorCode
from errors.exceptions import AppException

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "The healthz server failed to handle this request."


class ErrorResponse(BaseModel):
    """JSON body returned for any request that raised."""

    error_code: str
    message: str
    details: Optional[dict[str, Any]] = None
    path: str


def _request_context(request: Request) -> dict[str, Any]:
    return {"path": request.url.path, "method": request.method}


def _render(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def handle_app_exception(request: Request, exc: AppException) -> JSONResponse:
    """Render an AppException with its own code, status and details."""
    logger.warning(
        exc.message,
        extra={
            "extra_data": {
                **_request_context(request),
                "error_code": exc.error_code.value,
                "status_code": exc.status_code,
            }
        },
    )
    return _render(
        exc.status_code,
        ErrorResponse(
            error_code=exc.error_code.value,
            message=exc.message,
            details=exc.details,
            path=request.url.path,
        ),
    )


async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
    """
    Render any other exception as a generic 500.

    The exception and its traceback are logged; the body never includes them.
    """
    logger.error(
        "Unhandled %s while serving %s",
        type(exc).__name__,
        request.url.path,
        extra={"extra_data": {**_request_context(request), "error_code": ErrorCode.INTERNAL_ERROR.value}},
        exc_info=exc,
    )
    return _render(
        500,
        ErrorResponse(
            error_code=ErrorCode.INTERNAL_ERROR.value,
            message=GENERIC_ERROR_MESSAGE,
            path=request.url.path,
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, handle_app_exception)
    app.add_exception_handler(Exception, handle_unexpected_exception)
