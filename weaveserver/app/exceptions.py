from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from .services.job_errors import JobValidationError
from .utils.errors import error_body

logger = logging.getLogger(__name__)


def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_handler(_: Request, exc: HTTPException):  # type: ignore[override]
        if isinstance(exc.detail, dict) and "error" in exc.detail:
            return JSONResponse(status_code=exc.status_code, content=exc.detail)
        return JSONResponse(status_code=exc.status_code, content=error_body("http_error", str(exc.detail)))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_: Request, exc: RequestValidationError):  # type: ignore[override]
        return JSONResponse(
            status_code=422,
            content=error_body("invalid_request", "Validation failed", details=exc.errors()),
        )

    @app.exception_handler(JobValidationError)
    async def job_validation_handler(_: Request, exc: JobValidationError):  # type: ignore[override]
        return JSONResponse(status_code=400, content=error_body("invalid_request", str(exc), field=exc.field))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(_: Request, exc: Exception):  # type: ignore[override]
        logger.exception("unhandled error: %s", exc)
        return JSONResponse(status_code=500, content=error_body("internal_error", str(exc)))
