"""Error taxonomy and mapping of low-level failures to user-facing categories."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from imagestudio.models.generate import ErrorCategory, ErrorNotice
from imagestudio.utility.logger import AppLogger

logger = AppLogger.get_logger(__name__)

FETCH_FAILED = "Failed to fetch"
SERVER_STATUS_PATTERN = re.compile(r"status 5\d\d")

GENERATION = "generation"
ENHANCEMENT = "enhancement"

NETWORK_MESSAGES = {
    GENERATION: (
        "Network error: could not connect to the image API. This may be caused "
        "by a network problem, a CORS policy on the server, or the API endpoint "
        "being offline. Please check your connection and try again."
    ),
    ENHANCEMENT: (
        "Network error: could not connect to the enhancement API. "
        "Please check your connection."
    ),
}
SERVER_OVERLOADED_MESSAGE = "The server is overloaded. Please try again in a few minutes."
UNKNOWN_MESSAGES = {
    GENERATION: "An unknown error occurred.",
    ENHANCEMENT: "Could not enhance the prompt.",
}


@dataclass(eq=False)
class ImageStudioError(Exception):
    """
    Base error for every failure the app reports on purpose.
    FastAPI renders it as a JSON error envelope.
    """

    message: str
    status_code: int = 500
    error_type: str = "studio_error"
    details: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        return self.message


class InputValidationError(ImageStudioError):
    """Request rejected locally before any network call."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, status_code=400, error_type="validation_error")


class TransportError(ImageStudioError):
    """The request never completed at the network level."""

    def __init__(
        self, message: str = FETCH_FAILED, details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(
            message=message, status_code=503, error_type="transport_error", details=details
        )


class ApiRequestError(ImageStudioError):
    """The remote API answered with a non-success status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=status_code or 502,
            error_type="api_error",
            details=details,
        )
        self.upstream_status = status_code


class ConfigurationError(ImageStudioError):
    """A required credential or setting is missing."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, status_code=500, error_type="not_configured")


class GenerationError(ImageStudioError):
    """A failure after classification, carrying its category."""

    def __init__(
        self,
        category: ErrorCategory,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=status_code,
            error_type=category.value,
            details=details,
        )
        self.category = category

    def to_notice(self) -> ErrorNotice:
        return ErrorNotice(category=self.category, message=self.message)


class MapExceptions:
    """Classify failures into the small set of categories shown to users.

    Structured errors from the transport layer are checked first; message
    text matching ("Failed to fetch", "status 5xx") is kept for failures
    that only carry a string.
    """

    def classify(self, exc: BaseException, pathway: str = GENERATION) -> GenerationError:
        """Map any raised failure to exactly one GenerationError."""
        if isinstance(exc, GenerationError):
            return exc

        message = str(exc) if exc is not None else ""

        if isinstance(exc, TransportError) or FETCH_FAILED in message:
            logger.error("Network failure on %s pathway: %s", pathway, message)
            return GenerationError(
                category=ErrorCategory.NETWORK_UNREACHABLE,
                message=NETWORK_MESSAGES.get(pathway, NETWORK_MESSAGES[GENERATION]),
                status_code=503,
            )

        if self._is_server_error(exc, message):
            logger.error("Upstream server error on %s pathway: %s", pathway, message)
            return GenerationError(
                category=ErrorCategory.SERVER_OVERLOADED,
                message=SERVER_OVERLOADED_MESSAGE,
                status_code=503,
            )

        if isinstance(exc, ConfigurationError):
            logger.error("Missing configuration on %s pathway: %s", pathway, message)
            return GenerationError(
                category=ErrorCategory.NOT_CONFIGURED,
                message=message,
                status_code=500,
            )

        logger.error("Unclassified failure on %s pathway", pathway, exc_info=exc)
        return GenerationError(
            category=ErrorCategory.UNKNOWN,
            message=message or UNKNOWN_MESSAGES.get(pathway, UNKNOWN_MESSAGES[GENERATION]),
            status_code=500,
            details={"exception_type": exc.__class__.__name__},
        )

    @staticmethod
    def _is_server_error(exc: BaseException, message: str) -> bool:
        upstream = getattr(exc, "upstream_status", None)
        if isinstance(upstream, int) and 500 <= upstream <= 599:
            return True
        return bool(SERVER_STATUS_PATTERN.search(message))

    @staticmethod
    def register_exception_handlers(app: FastAPI) -> None:
        """
        Call this once on the FastAPI app:

            MapExceptions.register_exception_handlers(app)
        """

        @app.exception_handler(ImageStudioError)
        async def image_studio_error_handler(
            request: Request, exc: ImageStudioError
        ) -> JSONResponse:
            logger.error(
                "ImageStudioError caught by FastAPI handler",
                extra={"type": exc.error_type},
            )
            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "status": "error",
                    "error_type": exc.error_type,
                    "message": exc.message,
                    "details": exc.details,
                },
            )
