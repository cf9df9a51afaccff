"""Error handler middleware with identifier redaction."""

import logging
from typing import Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from shiftwise.config import settings
from shiftwise.utils.logging_utils import redact_user_id

logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Middleware for handling uncaught exceptions.

    - Logs errors with the user id redacted
    - Returns safe error messages to clients (no stack traces unless DEBUG)
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Handle request and catch any uncaught exceptions."""
        try:
            response = await call_next(request)
            return response

        except Exception as exc:
            user_id = request.query_params.get("userId")
            logger.error(
                f"Unhandled {type(exc).__name__} on {request.method} {request.url.path} "
                f"(user {redact_user_id(user_id)}): {exc}",
                exc_info=exc,
            )

            if settings.DEBUG:
                error_detail = {
                    "error": str(exc),
                    "type": type(exc).__name__,
                    "detail": "An error occurred processing your request",
                }
            else:
                error_detail = {
                    "error": "Internal server error",
                    "detail": "An unexpected error occurred. Please try again later.",
                }

            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=error_detail
            )
