"""
app/api/error_handlers.py

Translate pipeline errors into ``{"error": message}`` JSON responses.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.errors import IntegrityViolationError, PipelineError

logger = logging.getLogger(__name__)

_GENERIC_ERROR = "Internal server error"


async def _pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    body = exc.to_dict()
    if isinstance(exc, IntegrityViolationError):
        body["broken_links"] = exc.broken_links
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=body)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": f"{location}: {message}" if location else message},
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": _GENERIC_ERROR},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PipelineError, _pipeline_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
