from enum import Enum

from fastapi import status


class ApiError(Exception):
    """Base error rendered into the response envelope by the app's exception handlers."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, detail: str | None = None):
        self.message = message
        self.detail = detail
        super().__init__(message)

    @property
    def headers(self) -> dict[str, str] | None:
        return None


class ValidationError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str, detail: str | None = None):
        super().__init__(
            message=f"{resource} not found",
            detail=detail or f"{resource.lower()} with specified ID does not exist",
        )
        self.resource = resource


class DataAccessError(ApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class AuthFailure(str, Enum):
    MISSING = "missing"
    MALFORMED = "malformed"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"
    INVALID_CREDENTIALS = "invalid_credentials"


class AuthError(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(
        self,
        reason: AuthFailure,
        detail: str | None = None,
        message: str = "Unauthorized",
        scheme: str = "Bearer",
    ):
        super().__init__(message=message, detail=detail or reason.value.replace("_", " "))
        self.reason = reason
        self.scheme = scheme

    @property
    def headers(self) -> dict[str, str]:
        return {"WWW-Authenticate": self.scheme}
