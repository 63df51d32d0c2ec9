"""Error taxonomy for the login API, converted to JSON at the route boundary."""
from __future__ import annotations

from typing import Any


class LoginError(Exception):
    status_code = 500
    default_message = "Something went wrong. Please try again later."

    def __init__(self, message: str | None = None, field: str | None = None) -> None:
        self.message = message or self.default_message
        self.field = field
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": False, "message": self.message}
        if self.field:
            payload["field"] = self.field
        return payload


class ValidationError(LoginError):
    status_code = 400
    default_message = "Invalid input"


class AuthError(LoginError):
    """Credential mismatch. The message never says which half was wrong."""

    status_code = 401
    default_message = "Invalid email/username or password"

    def __init__(self, message: str | None = None, field: str | None = "email") -> None:
        super().__init__(message, field)


class RateLimitError(LoginError):
    status_code = 429
    default_message = "Too many login attempts. Please try again later."

    def __init__(
        self,
        message: str | None = None,
        field: str | None = "email",
        retry_after: int = 0,
    ) -> None:
        super().__init__(message, field)
        self.retry_after = retry_after


class InternalError(LoginError):
    status_code = 500


__all__ = ["LoginError", "ValidationError", "AuthError", "RateLimitError", "InternalError"]
