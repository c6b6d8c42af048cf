"""
Error taxonomy and the FastAPI handlers that turn it into responses.

Every error body has the shape ``{"error": "<message>"}``.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


class ExpenseTrackerError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ExpenseTrackerError):
    status_code = 400


class AuthError(ExpenseTrackerError):
    status_code = 401


class NotFoundError(ExpenseTrackerError):
    status_code = 404


class ConflictError(ExpenseTrackerError):
    status_code = 400


class InternalError(ExpenseTrackerError):
    status_code = 500


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query"))
        msg = err.get("msg", "Invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "Invalid request"


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ExpenseTrackerError)
    async def handle_tracker_error(request: Request, exc: ExpenseTrackerError):
        if exc.status_code >= 500:
            logger.error("request_failed", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=ValidationError.status_code,
            content={"error": _format_validation_errors(exc)},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("unhandled_error", path=request.url.path)
        return JSONResponse(status_code=InternalError.status_code, content={"error": str(exc)})
