"""API middleware package."""

from vrtherapy.api.middleware.error_handler import ErrorHandlerMiddleware, register_exception_handlers
from vrtherapy.api.middleware.rate_limiter import RateLimitMiddleware, RateLimitConfig

__all__ = [
    "ErrorHandlerMiddleware",
    "register_exception_handlers",
    "RateLimitMiddleware",
    "RateLimitConfig",
]
