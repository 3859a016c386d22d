"""Maps application errors onto JSON HTTP responses."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from five_bells_shared.application.exceptions import AppError, InvalidModificationError

logger = logging.getLogger(__name__)


def error_body(exc: AppError) -> dict[str, Any]:
    body: dict[str, Any] = {"id": type(exc).__name__, "message": exc.detail}
    if exc.validation_errors is not None:
        body["validationErrors"] = exc.validation_errors
    if isinstance(exc, InvalidModificationError) and exc.invalid_diffs is not None:
        body["invalidDiffs"] = exc.invalid_diffs
    return body


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error(req: Request, exc: AppError) -> JSONResponse:
        logger.warning("%s %s: %s: %s", req.method, req.url.path, type(exc).__name__, exc.detail)
        return JSONResponse(status_code=exc.status_code, content=error_body(exc))

    @app.exception_handler(Exception)
    async def _unhandled(req: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s %s", req.method, req.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"id": "InternalServerError", "message": f"{type(exc).__name__}: {exc}"},
        )
