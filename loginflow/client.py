"""Form controller driving the login API from Python.

Mirrors the browser form: it keeps field values, validates them locally for
quick feedback, posts them to ``/api/login`` and turns the verdict into a
message plus per-field errors. The server re-validates everything; local
checks only save a round trip.
"""
from __future__ import annotations

import json
import logging
import re
from enum import Enum
from pathlib import Path
from typing import Any

import requests

from .security import MAX_FIELD_LENGTH, MIN_IDENTIFIER_LENGTH, MIN_PASSWORD_LENGTH

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:5000"
REQUEST_TIMEOUT = 30
_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class FormState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    ERROR = "error"


class RememberedIdentifierStore:
    """Keeps the last identifier for prefill. Passwords are never written."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path else Path.home() / ".loginflow" / "remembered.json"

    def load(self) -> str | None:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        identifier = data.get("email") if isinstance(data, dict) else None
        return identifier if isinstance(identifier, str) else None

    def save(self, identifier: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"email": identifier}), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_PATTERN.match(value))


def field_error(name: str, value: str, required: bool = True) -> str | None:
    """Client-side rule for one field; ``required=False`` lets an empty value pass."""
    if not value:
        if not required:
            return None
        return "Email or username is required" if name == "email" else "Password is required"
    if len(value) > MAX_FIELD_LENGTH:
        label = "Email/username" if name == "email" else "Password"
        return f"{label} must be at most {MAX_FIELD_LENGTH} characters"
    if name == "email" and not is_valid_email(value) and len(value) < MIN_IDENTIFIER_LENGTH:
        return f"Please enter a valid email or username (min {MIN_IDENTIFIER_LENGTH} characters)"
    if name == "password" and len(value) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    return None


def validate_fields(email: str, password: str) -> dict[str, str]:
    """Client-side rules; returns a mapping of field name to message."""
    errors: dict[str, str] = {}
    for name, value in (("email", email), ("password", password)):
        message = field_error(name, value)
        if message:
            errors[name] = message
    return errors


class LoginFormController:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        store: RememberedIdentifierStore | None = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.store = store or RememberedIdentifierStore()
        self.timeout = timeout
        self.state = FormState.IDLE
        self.values: dict[str, Any] = {"email": "", "password": "", "rememberMe": False}
        self.field_errors: dict[str, str] = {}
        self.message: str | None = None
        self.user: dict[str, Any] | None = None

    def prefill(self) -> None:
        remembered = self.store.load()
        if remembered:
            self.values["email"] = remembered
            self.values["rememberMe"] = True

    def set_field(self, name: str, value: Any) -> None:
        if name not in self.values:
            raise KeyError(name)
        self.values[name] = value
        self.validate_field(name)
        if self.state in (FormState.SUCCESS, FormState.ERROR):
            self.state = FormState.IDLE
            self.message = None

    def validate_field(self, name: str) -> str | None:
        """Check one field as the form does on blur; empty values are not flagged yet."""
        if name not in ("email", "password"):
            self.field_errors.pop(name, None)
            return None
        value = str(self.values[name])
        if name == "email":
            value = value.strip()
        message = field_error(name, value, required=False)
        if message:
            self.field_errors[name] = message
        else:
            self.field_errors.pop(name, None)
        return message

    def submit(self) -> FormState:
        if self.state is FormState.SUBMITTING:
            return self.state

        email = str(self.values["email"]).strip()
        password = str(self.values["password"])
        remember_me = bool(self.values["rememberMe"])

        self.field_errors = validate_fields(email, password)
        self.message = None
        self.user = None
        if self.field_errors:
            self.state = FormState.ERROR
            return self.state

        self.state = FormState.SUBMITTING
        try:
            response = requests.post(
                f"{self.base_url}/api/login",
                json={"email": email, "password": password, "rememberMe": remember_me},
                timeout=self.timeout,
            )
            data = response.json()
        except requests.Timeout:
            logger.warning("Login request to %s timed out", self.base_url)
            return self._fail("The server took too long to respond. Please try again.")
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Login request to %s failed: %s", self.base_url, exc)
            return self._fail("Connection error. Please check if the server is running.")

        if not isinstance(data, dict):
            data = {}
        if response.ok and data.get("success"):
            self.state = FormState.SUCCESS
            self.message = data.get("message") or "Login successful!"
            self.user = data.get("user")
            if remember_me:
                self.store.save(email)
            else:
                self.store.clear()
            return self.state

        message = data.get("message") or "Login failed. Please try again."
        field = data.get("field")
        if field in self.values:
            self.field_errors[field] = message
        return self._fail(message)

    def _fail(self, message: str) -> FormState:
        self.state = FormState.ERROR
        self.message = message
        return self.state


__all__ = [
    "FormState",
    "LoginFormController",
    "RememberedIdentifierStore",
    "field_error",
    "is_valid_email",
    "validate_fields",
]
