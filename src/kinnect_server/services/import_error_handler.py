"""Error classification for activity import.

Maps exceptions raised while fetching or storing imported activities to a
small set of categories so the API can report them consistently.

    TRANSIENT (can retry):
    - RATE_LIMITED: Strava rate limit, retry after the given delay
    - API_UNAVAILABLE: Strava unreachable or returned 5xx
    - API_TIMEOUT: Request timed out
    - DATABASE_ERROR: Storage write failed

    PERMANENT (don't retry automatically):
    - TOKEN_INVALID: Token expired or revoked, user must reconnect Strava
    - API_ERROR: Strava returned a 4xx error response
    - TRANSFORM_ERROR: Payload could not be mapped to an activity
    - INTERNAL_ERROR: Unexpected internal error
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
import structlog
from sqlalchemy.exc import SQLAlchemyError

from kinnect_server.integrations.strava import StravaAuthError, StravaError, StravaRateLimitError

logger = structlog.get_logger()


class ImportErrorType(str, Enum):
    """Categorized import error types."""

    TOKEN_INVALID = "token_invalid"
    RATE_LIMITED = "rate_limited"
    API_UNAVAILABLE = "api_unavailable"
    API_TIMEOUT = "api_timeout"
    API_ERROR = "api_error"
    TRANSFORM_ERROR = "transform_error"
    DATABASE_ERROR = "database_error"
    INTERNAL_ERROR = "internal_error"


@dataclass
class ImportFailure:
    """Structured import failure.

    Attributes:
        error_type: Categorized error type
        message: Human-readable message
        is_transient: Whether retrying later may succeed
        retry_after_seconds: Suggested delay before retrying (None if no retry)
    """

    error_type: ImportErrorType
    message: str
    is_transient: bool
    retry_after_seconds: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dict."""
        return {
            "error_type": self.error_type.value,
            "message": self.message,
            "is_transient": self.is_transient,
            "retry_after_seconds": self.retry_after_seconds,
        }


class ImportErrorHandler:
    """Classify import exceptions.

    Usage:
        handler = ImportErrorHandler()

        try:
            payloads = await client.fetch_all_activities()
        except Exception as e:
            error = handler.classify(e, context={"user_id": user_id})
    """

    def __init__(self) -> None:
        """Initialize error handler."""
        self.logger = logger.bind(component="import_error_handler")

    def classify(
        self,
        exception: Exception,
        context: dict[str, Any] | None = None,
    ) -> ImportFailure:
        """Classify an exception into an ImportFailure.

        Args:
            exception: The exception to classify
            context: Extra logging context (user_id, external id, ...)

        Returns:
            ImportFailure with category and retry info
        """
        context = context or {}
        error = self._classify(exception)

        log = self.logger.warning if error.is_transient else self.logger.error
        log(
            "Import error",
            error_type=error.error_type.value,
            error=str(exception),
            **context,
        )
        return error

    def _classify(self, exception: Exception) -> ImportFailure:
        if isinstance(exception, StravaRateLimitError):
            return ImportFailure(
                error_type=ImportErrorType.RATE_LIMITED,
                message=f"Rate limited by Strava. Retry after {exception.retry_after}s.",
                is_transient=True,
                retry_after_seconds=exception.retry_after,
            )
        if isinstance(exception, StravaAuthError):
            return ImportFailure(
                error_type=ImportErrorType.TOKEN_INVALID,
                message="Strava access token is invalid or revoked. Reconnect Strava.",
                is_transient=False,
            )
        if isinstance(exception, StravaError):
            if exception.status_code is not None and exception.status_code >= 500:
                return ImportFailure(
                    error_type=ImportErrorType.API_UNAVAILABLE,
                    message=f"Strava API unavailable ({exception.status_code})",
                    is_transient=True,
                    retry_after_seconds=60,
                )
            return ImportFailure(
                error_type=ImportErrorType.API_ERROR,
                message=f"Strava API error on {exception.endpoint}: {exception}",
                is_transient=False,
            )

        if isinstance(exception, httpx.TimeoutException):
            return ImportFailure(
                error_type=ImportErrorType.API_TIMEOUT,
                message="Strava API request timed out",
                is_transient=True,
                retry_after_seconds=30,
            )
        if isinstance(exception, httpx.HTTPError):
            return ImportFailure(
                error_type=ImportErrorType.API_UNAVAILABLE,
                message=f"Could not reach Strava: {exception}",
                is_transient=True,
                retry_after_seconds=60,
            )

        if isinstance(exception, SQLAlchemyError):
            return ImportFailure(
                error_type=ImportErrorType.DATABASE_ERROR,
                message="Failed to store activity",
                is_transient=True,
                retry_after_seconds=5,
            )

        if isinstance(exception, (ValueError, KeyError, TypeError)):
            return ImportFailure(
                error_type=ImportErrorType.TRANSFORM_ERROR,
                message=f"Could not read activity payload: {exception!r}",
                is_transient=False,
            )

        return ImportFailure(
            error_type=ImportErrorType.INTERNAL_ERROR,
            message=f"Unexpected error: {type(exception).__name__}",
            is_transient=False,
        )
