"""API middleware."""

from renovo.api.middleware.error_handler import ErrorHandlerMiddleware
from renovo.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware", "ErrorHandlerMiddleware"]
