"""Input checks and credential verification for the demo login."""
from __future__ import annotations

import hmac
import random
import time
from dataclasses import dataclass
from typing import Any, Callable

from .credentials import CredentialRecord, CredentialRepository
from .errors import ValidationError

MIN_IDENTIFIER_LENGTH = 3
MIN_PASSWORD_LENGTH = 6
MAX_FIELD_LENGTH = 100

_MARKUP_CHARS = str.maketrans("", "", "<>")
# Compared against when the identifier is unknown so both paths do the same work.
_PLACEHOLDER_PASSWORD = "placeholder-password-never-matches"
_rng = random.SystemRandom()


@dataclass(frozen=True)
class LoginAttempt:
    identifier: str
    password: str
    remember_me: bool = False


def sanitize(value: str) -> str:
    """Trim whitespace and drop angle brackets."""
    return value.strip().translate(_MARKUP_CHARS)


def parse_login_payload(payload: Any) -> LoginAttempt:
    """Validate a decoded JSON body, raising ``ValidationError`` on the first bad field."""
    if not isinstance(payload, dict):
        payload = {}

    raw_identifier = payload.get("email")
    raw_password = payload.get("password")
    if not raw_identifier:
        raise ValidationError("Email/username and password are required", field="email")
    if not raw_password:
        raise ValidationError("Email/username and password are required", field="password")
    if not isinstance(raw_identifier, str):
        raise ValidationError("Email/username must be text", field="email")
    if not isinstance(raw_password, str):
        raise ValidationError("Password must be text", field="password")

    identifier = sanitize(raw_identifier)
    password = sanitize(raw_password)

    if len(identifier) < MIN_IDENTIFIER_LENGTH:
        raise ValidationError(
            f"Email/username must be at least {MIN_IDENTIFIER_LENGTH} characters", field="email"
        )
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
        )
    if len(raw_identifier) > MAX_FIELD_LENGTH:
        raise ValidationError("Email/username is too long", field="email")
    if len(raw_password) > MAX_FIELD_LENGTH:
        raise ValidationError("Password is too long", field="password")

    return LoginAttempt(
        identifier=identifier,
        password=password,
        remember_me=payload.get("rememberMe") is True,
    )


def verify_credentials(
    repository: CredentialRepository, identifier: str, password: str
) -> CredentialRecord | None:
    """Return the matching account, comparing passwords in constant time."""
    record = repository.find(identifier)
    expected = record.password if record else _PLACEHOLDER_PASSWORD
    # JSON admits lone surrogates, which plain utf-8 encoding rejects.
    matches = hmac.compare_digest(
        expected.encode("utf-8", "surrogatepass"),
        password.encode("utf-8", "surrogatepass"),
    )
    if record is None or not matches:
        return None
    return record


def hold_response(
    started: float,
    delay_range: tuple[float, float],
    sleep: Callable[[float], None] = time.sleep,
) -> float:
    """Sleep until a random latency target measured from ``started`` is reached.

    Returns the number of seconds slept.
    """
    low, high = delay_range
    if high <= 0:
        return 0.0
    target = _rng.uniform(low, high)
    remaining = target - (time.monotonic() - started)
    if remaining > 0:
        sleep(remaining)
        return remaining
    return 0.0


__all__ = [
    "LoginAttempt",
    "MAX_FIELD_LENGTH",
    "MIN_IDENTIFIER_LENGTH",
    "MIN_PASSWORD_LENGTH",
    "hold_response",
    "parse_login_payload",
    "sanitize",
    "verify_credentials",
]
