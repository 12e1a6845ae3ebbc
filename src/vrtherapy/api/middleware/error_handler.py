"""
Error Handler Middleware

Provides consistent error handling and response formatting.
Logs errors with correlation IDs for debugging.

Every error body has the shape:
    {"error": <kind>, "message": <text>, "correlation_id": <id>}
where kind is a stable machine-readable value.
"""

import time
import traceback
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from vrtherapy.config.logging_config import (
    bind_correlation_id,
    clear_context,
    get_correlation_id,
    get_logger,
)
from vrtherapy.domain.errors import TherapyError
from vrtherapy.infrastructure.metrics import track_http_request
from vrtherapy.infrastructure.monitoring import capture_exception_with_context

logger = get_logger(__name__)


def error_response(status_code: int, body: dict, headers: dict | None = None) -> JSONResponse:
    correlation_id = get_correlation_id()
    return JSONResponse(
        status_code=status_code,
        content={**body, "correlation_id": correlation_id},
        headers=headers,
    )


async def therapy_error_handler(request: Request, exc: TherapyError) -> JSONResponse:
    """Render a domain error."""
    if exc.status_code >= 500:
        logger.error(
            "Request failed",
            path=request.url.path,
            error=exc.kind,
            cause=repr(exc.__cause__) if exc.__cause__ else None,
        )
    else:
        logger.info(
            "Request rejected",
            path=request.url.path,
            error=exc.kind,
            status_code=exc.status_code,
        )
    return error_response(exc.status_code, exc.to_dict())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request parsing errors as validation_failed."""
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", "Invalid value"),
        }
        for error in exc.errors()
    ]
    logger.info("Request validation failed", path=request.url.path, errors=len(errors))
    return error_response(
        400,
        {
            "error": "validation_failed",
            "message": "Request validation failed",
            "details": {"errors": errors},
        },
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors (unknown routes, wrong methods) in the same shape."""
    kind = {401: "unauthorized", 403: "forbidden", 404: "not_found"}.get(exc.status_code, "http_error")
    return error_response(
        exc.status_code,
        {"error": kind, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error renderers on an application."""
    app.add_exception_handler(TherapyError, therapy_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.
    
    Provides:
    - Correlation ID tracking for all requests
    - Request count and latency metrics
    - Sanitized 500 responses for unhandled errors
    - Sensitive data protection in errors
    """
    
    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request with error handling."""
        
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid4())
        bind_correlation_id(correlation_id)
        started = time.perf_counter()
        
        try:
            response = await call_next(request)
            response.headers["X-Correlation-ID"] = correlation_id
            track_http_request(request.method, response.status_code, time.perf_counter() - started)
            return response
            
        except Exception as e:
            logger.error(
                "Unhandled exception",
                path=request.url.path,
                method=request.method,
                error_type=type(e).__name__,
                error_message=str(e),
                traceback=traceback.format_exc(),
            )
            capture_exception_with_context(e, extra={"path": request.url.path})
            track_http_request(request.method, 500, time.perf_counter() - started)
            
            # Never leak internals to the caller
            return JSONResponse(
                status_code=500,
                content={
                    "error": "internal_error",
                    "message": "An unexpected error occurred. Please try again.",
                    "correlation_id": correlation_id,
                },
                headers={"X-Correlation-ID": correlation_id},
            )
            
        finally:
            clear_context()
