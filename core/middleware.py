from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi import FastAPI, Request

from core.exceptions import (
    AuthorizationError,
    ConsistencyError,
    NotFoundError,
    PredictorError,
    ProviderError,
    ValidationError,
)
from core.logging import get_logger
from schemas.common import error_response, ApiStatus

log = get_logger("api")


def status_for(exc: PredictorError) -> tuple[int, ApiStatus]:
    """HTTP status code and envelope status for a domain error."""
    if isinstance(exc, ValidationError):
        return 400, ApiStatus.VALIDATION_ERROR
    if isinstance(exc, AuthorizationError):
        if not exc.authenticated:
            return 401, ApiStatus.AUTHENTICATION_ERROR
        return 403, ApiStatus.AUTHORIZATION_ERROR
    if isinstance(exc, NotFoundError):
        return 404, ApiStatus.NOT_FOUND
    if isinstance(exc, ProviderError):
        return 502, ApiStatus.SERVER_ERROR
    return 500, ApiStatus.SERVER_ERROR


def setup_middleware(app: FastAPI, cors_origins: list[str] | None = None):
    """Setup CORS and global exception handlers"""

    # Global exception handler for validation errors
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        log.warning("request_validation_failed", path=str(request.url.path), errors=exc.errors())
        return JSONResponse(
            status_code=422,
            content=error_response(
                message="Request validation failed",
                status=ApiStatus.VALIDATION_ERROR,
                error_code="VALIDATION_ERROR",
                data={"errors": exc.errors()}
            )
        )

    @app.exception_handler(PredictorError)
    async def domain_exception_handler(request: Request, exc: PredictorError):
        status_code, status = status_for(exc)
        event = "request_failed" if status_code >= 500 else "request_rejected"
        log_method = log.error if isinstance(exc, (ConsistencyError, ProviderError)) else log.info
        log_method(
            event,
            path=str(request.url.path),
            error_code=exc.error_code,
            error=exc.message,
            status_code=status_code,
        )
        return JSONResponse(
            status_code=status_code,
            content=error_response(
                message=exc.message,
                status=status,
                error_code=exc.error_code,
                data=exc.details or None,
            )
        )

    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
