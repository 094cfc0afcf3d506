from typing import Any, Dict, List, Optional

from fastapi import status


class BookTrackerError(Exception):
    """Base class for failures rendered as structured JSON errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"

    def __init__(
        self,
        detail: Optional[str] = None,
        errors: Optional[List[str]] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        self.detail = detail or self.default_detail
        self.errors = errors
        # Additional top-level fields for the JSON body
        self.extra = extra or {}
        super().__init__(self.detail)

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        body = {"detail": self.detail, "code": self.code}
        if self.errors:
            body["errors"] = self.errors
        body.update(self.extra)
        return body


class ValidationFailed(BookTrackerError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Validation failed"

    def __init__(self, errors: List[str], detail: Optional[str] = None):
        super().__init__(detail or "; ".join(errors), errors=errors)


class DuplicateEmail(BookTrackerError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Email already registered"


class InvalidCredentials(BookTrackerError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid email or password"


class InvalidCode(BookTrackerError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid OTP"


class CodeExpired(BookTrackerError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "OTP has expired. Please request a new one."


class EmailNotVerified(BookTrackerError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Please verify your email before logging in"


class Unauthenticated(BookTrackerError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Access denied. No token provided."


class InvalidToken(BookTrackerError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid token"


class Forbidden(BookTrackerError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not allowed"


class NotFound(BookTrackerError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class RateLimited(BookTrackerError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_detail = "Too many attempts. Please try again later."


class UpstreamFailure(BookTrackerError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Upstream service failure"
