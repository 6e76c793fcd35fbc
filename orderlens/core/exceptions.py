"""Custom exceptions and FastAPI exception handlers.

Implements RFC 7807 Problem Details for machine-readable error responses.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from orderlens.core.logging import get_logger
from orderlens.core.problem_details import (
    ERROR_TYPES,
    ProblemDetailResponse,
    problem_response,
)

logger = get_logger(__name__)


# =============================================================================
# Exception Classes
# =============================================================================


class OrderLensError(Exception):
    """Base exception for OrderLens application errors.

    All application-specific exceptions should inherit from this class.
    Each exception type maps to an RFC 7807 problem type URI.
    """

    # Default error type URI (override in subclasses)
    error_type_uri: str = ERROR_TYPES["INTERNAL_ERROR"]

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize application error.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code.
            status_code: HTTP status code.
            details: Additional error context.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    @property
    def title(self) -> str:
        """RFC 7807 title - short summary of problem type."""
        return self.code.replace("_", " ").title()


class DatabaseError(OrderLensError):
    """Database operation error.

    Use when a query against the order store fails unexpectedly.
    """

    error_type_uri: str = ERROR_TYPES["DATABASE_ERROR"]

    def __init__(
        self,
        message: str = "Database operation failed",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="DATABASE_ERROR",
            status_code=500,
            details=details,
        )


class BadRequestError(OrderLensError):
    """Bad request error.

    Base for caller-input errors detected before any aggregation runs.
    Subclasses override the machine-readable code.
    """

    error_type_uri: str = ERROR_TYPES["BAD_REQUEST"]
    default_code: str = "BAD_REQUEST"

    def __init__(
        self,
        message: str = "Bad request",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=self.default_code,
            status_code=400,
            details=details,
        )


class InvalidRangeError(BadRequestError):
    """Date range is unparsable, reversed, or longer than allowed."""

    error_type_uri: str = ERROR_TYPES["INVALID_DATE_RANGE"]
    default_code = "INVALID_DATE_RANGE"


class MissingScopeError(BadRequestError):
    """Neither a branch nor a brand identifier was supplied."""

    error_type_uri: str = ERROR_TYPES["MISSING_SCOPE"]
    default_code = "MISSING_SCOPE"


class UnsupportedGranularityError(BadRequestError):
    """Cohort granularity is not one of WEEK or MONTH."""

    error_type_uri: str = ERROR_TYPES["UNSUPPORTED_GRANULARITY"]
    default_code = "UNSUPPORTED_GRANULARITY"


class RowLimitExceededError(BadRequestError):
    """The requested period holds more order rows than one request may load.

    Callers should narrow the date range and retry.
    """

    error_type_uri: str = ERROR_TYPES["ROW_LIMIT_EXCEEDED"]
    default_code = "ROW_LIMIT_EXCEEDED"


# =============================================================================
# Exception Handlers (RFC 7807)
# =============================================================================


async def orderlens_exception_handler(
    _request: Request,
    exc: OrderLensError,
) -> ProblemDetailResponse:
    """Handle OrderLensError exceptions with RFC 7807 Problem Details.

    Args:
        _request: FastAPI request object.
        exc: The raised exception.

    Returns:
        RFC 7807 Problem Detail response.
    """
    if exc.status_code >= 500:
        logger.error(
            "app.error_handled",
            error=exc.message,
            error_type=type(exc).__name__,
            error_code=exc.code,
            status_code=exc.status_code,
            details=exc.details,
            exc_info=True,
        )
    else:
        logger.warning(
            "app.client_error",
            error=exc.message,
            error_type=type(exc).__name__,
            error_code=exc.code,
            status_code=exc.status_code,
            details=exc.details,
        )

    return problem_response(
        status=exc.status_code,
        title=exc.title,
        detail=exc.message,
        error_code=exc.code,
        details=exc.details,
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> ProblemDetailResponse:
    """Handle Pydantic validation errors with RFC 7807 Problem Details.

    Args:
        request: FastAPI request object.
        exc: Pydantic validation error.

    Returns:
        RFC 7807 Problem Detail response with field-level errors.
    """
    field_errors: list[dict[str, str]] = []
    for error in exc.errors():
        loc = error.get("loc", [])
        field_path = ".".join(str(part) for part in loc if part != "body")
        field_errors.append(
            {
                "field": field_path,
                "message": str(error.get("msg", "Validation failed")),
                "type": str(error.get("type", "unknown")),
            }
        )

    logger.warning(
        "app.validation_error",
        error_count=len(field_errors),
        path=str(request.url.path),
        fields=[e["field"] for e in field_errors],
    )

    return problem_response(
        status=422,
        title="Validation Error",
        detail=f"Request validation failed with {len(field_errors)} error(s). "
        "Check the 'errors' field for details.",
        error_code="VALIDATION_ERROR",
        errors=field_errors,
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> ProblemDetailResponse:
    """Handle unexpected exceptions with RFC 7807 Problem Details.

    Args:
        request: FastAPI request object.
        exc: The raised exception.

    Returns:
        RFC 7807 Problem Detail response.
    """
    logger.error(
        "app.unhandled_error",
        error=str(exc),
        error_type=type(exc).__name__,
        path=str(request.url.path),
        exc_info=True,
    )

    return problem_response(
        status=500,
        title="Internal Server Error",
        detail="An unexpected error occurred. Please try again later or "
        "contact support with the request_id.",
        error_code="INTERNAL_ERROR",
    )


# =============================================================================
# Handler Registration
# =============================================================================


def register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.add_exception_handler(OrderLensError, orderlens_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
