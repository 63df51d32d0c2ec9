"""HTTP routes exposing the login form and JSON APIs."""
from __future__ import annotations

import time
from functools import wraps

from flask import Blueprint, current_app, g, jsonify, make_response, render_template, request
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from .errors import AuthError, InternalError, LoginError, RateLimitError
from .security import hold_response, parse_login_payload, verify_credentials

ui_blueprint = Blueprint("ui", __name__)
api_blueprint = Blueprint("api", __name__, url_prefix="/api")


def rate_limited(view):
    """Gate a view behind the per-address limiter; 2xx responses refund their slot."""

    @wraps(view)
    def wrapped(*args, **kwargs):
        limiter = current_app.extensions["login_rate_limiter"]
        address = request.remote_addr or "unknown"
        try:
            g.login_ticket = (address, limiter.acquire(address))
        except RateLimitError:
            current_app.logger.warning("Login rate limit exceeded for %s", address)
            raise
        response = make_response(view(*args, **kwargs))
        if response.status_code < 400:
            refund_attempt()
        return response

    return wrapped


def refund_attempt() -> None:
    """Hand the current request's limiter slot back; safe to call twice."""
    reserved = g.pop("login_ticket", None)
    if reserved is not None:
        current_app.extensions["login_rate_limiter"].release(*reserved)


@ui_blueprint.route("/")
def login_form():
    return render_template("login.html")


@api_blueprint.route("/message")
def message():
    return jsonify({"message": "Hello from the backend!"})


@api_blueprint.route("/login", methods=["POST"])
@rate_limited
def login():
    try:
        return _handle_login()
    except (LoginError, HTTPException):
        raise
    except Exception as exc:
        current_app.logger.exception("Unexpected error while processing login")
        raise InternalError() from exc


def _handle_login():
    attempt = parse_login_payload(request.get_json(silent=True))
    repository = current_app.extensions["credential_repository"]

    started = time.monotonic()
    record = verify_credentials(repository, attempt.identifier, attempt.password)
    if record is not None:
        refund_attempt()
    hold_response(started, current_app.config["LOGIN_DELAY_RANGE"])

    if record is None:
        current_app.logger.warning(
            "Failed login for %r from %s", attempt.identifier, request.remote_addr
        )
        raise AuthError()

    current_app.logger.info("Successful login for %s", record.username)
    return jsonify(
        {
            "success": True,
            "message": f"Login successful! Welcome back, {record.display_name}.",
            "user": {**record.public_profile(), "rememberMe": attempt.remember_me},
        }
    )


def handle_login_error(error: LoginError):
    response = jsonify(error.to_dict())
    response.status_code = error.status_code
    if isinstance(error, RateLimitError) and error.retry_after:
        response.headers["Retry-After"] = str(error.retry_after)
    return response


def handle_payload_too_large(error: RequestEntityTooLarge):
    response = jsonify({"success": False, "message": "Request payload is too large"})
    response.status_code = 413
    return response


def apply_security_headers(response):
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "no-referrer")
    return response


def register_routes(app):
    app.register_blueprint(ui_blueprint)
    app.register_blueprint(api_blueprint)
    app.register_error_handler(LoginError, handle_login_error)
    app.register_error_handler(RequestEntityTooLarge, handle_payload_too_large)
    app.after_request(apply_security_headers)
