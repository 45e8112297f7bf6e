"""Standard error handler: consistent error responses across all routes."""

from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..errors import (
    AdapterFailure,
    IncidentPilotError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from ..utils.logging import get_logger

logger = get_logger("middleware.error_handler")


def _error_response(
    request: Request,
    status_code: int,
    detail,
    extra: Optional[dict] = None,
) -> JSONResponse:
    content = {
        "error": True,
        "status_code": status_code,
        "detail": detail,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": getattr(request.state, "request_id", None),
    }
    if extra:
        content.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


def _status_for(exc: IncidentPilotError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, (ValidationError, InvalidTransitionError)):
        return 400
    if isinstance(exc, AdapterFailure):
        return 502
    return 500


def register_error_handlers(app: FastAPI) -> None:
    """Register standard error handlers on the app."""

    @app.exception_handler(IncidentPilotError)
    async def domain_exception_handler(request: Request, exc: IncidentPilotError):
        status_code = _status_for(exc)
        extra = None
        if isinstance(exc, ValidationError):
            extra = {"errors": exc.errors}
        elif isinstance(exc, InvalidTransitionError):
            extra = {"current": exc.current, "target": exc.target, "allowed": exc.allowed}
        logger.info(
            "domain_error",
            error_type=type(exc).__name__,
            status_code=status_code,
            detail=exc.message,
            path=str(request.url.path),
        )
        return _error_response(request, status_code, exc.message, extra)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(request, exc.status_code, exc.detail)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _error_response(request, 422, "Validation error", {"errors": exc.errors()})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            "unhandled_exception",
            error=str(exc),
            path=str(request.url.path),
            exc_info=True,
        )
        return _error_response(request, 500, "Internal server error")
