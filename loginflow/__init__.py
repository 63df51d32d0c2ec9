"""Application factory for the login flow demo."""
from __future__ import annotations

import os
from flask import Flask
from flask_cors import CORS

from .credentials import CredentialRepository, InMemoryCredentialRepository
from .rate_limit import LoginRateLimiter
from .routes import register_routes


def _delay_range_from_env() -> tuple[float, float]:
    low = int(os.getenv("LOGIN_DELAY_MIN", "100"))
    high = int(os.getenv("LOGIN_DELAY_MAX", "200"))
    return low / 1000, max(low, high) / 1000


def create_app(
    config: dict | None = None,
    credentials: CredentialRepository | None = None,
) -> Flask:
    """Application factory used by the WSGI entrypoint."""
    app = Flask(
        __name__,
        static_folder="static",
        template_folder="templates",
    )
    app.config.update(
        MAX_CONTENT_LENGTH=10 * 1024,
        LOGIN_MAX_ATTEMPTS=int(os.getenv("LOGIN_MAX_ATTEMPTS", "5")),
        LOGIN_WINDOW_SECONDS=int(os.getenv("LOGIN_WINDOW_SECONDS", "900")),
        LOGIN_DELAY_RANGE=_delay_range_from_env(),
        CORS_ORIGINS=os.getenv("CORS_ORIGINS", "*").strip(),
    )
    if config:
        app.config.update(config)

    app.extensions["credential_repository"] = credentials or InMemoryCredentialRepository()
    app.extensions["login_rate_limiter"] = LoginRateLimiter(
        max_attempts=app.config["LOGIN_MAX_ATTEMPTS"],
        window_seconds=app.config["LOGIN_WINDOW_SECONDS"],
    )
    CORS(app, resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}})

    register_routes(app)
    return app


__all__ = ["create_app"]
