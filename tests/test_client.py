from __future__ import annotations

import pytest
import requests

from loginflow import create_app
from loginflow.client import (
    FormState,
    LoginFormController,
    RememberedIdentifierStore,
    validate_fields,
)


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return self._payload


@pytest.fixture()
def store(tmp_path):
    return RememberedIdentifierStore(tmp_path / "remembered.json")


@pytest.fixture()
def controller(store):
    return LoginFormController(base_url="http://testserver/", store=store)


def fill(controller, email="demo", password="password123", remember=False):
    controller.set_field("email", email)
    controller.set_field("password", password)
    controller.set_field("rememberMe", remember)


def test_client_validation_blocks_request(controller, monkeypatch):
    def fake_post(*args, **kwargs):
        raise AssertionError("request must not be sent")

    monkeypatch.setattr("loginflow.client.requests.post", fake_post)
    fill(controller, email="ab", password="123")
    assert controller.submit() is FormState.ERROR
    assert set(controller.field_errors) == {"email", "password"}


def test_validate_fields_accepts_short_email_shapes():
    assert validate_fields("a@b.co", "password123") == {}
    assert validate_fields("", "")["email"] == "Email or username is required"


def test_successful_submit_remembers_identifier(controller, store, monkeypatch):
    captured = {}

    def fake_post(url, json=None, timeout=None):
        captured.update(url=url, json=json, timeout=timeout)
        return FakeResponse(
            200,
            {
                "success": True,
                "message": "Login successful! Welcome back, Demo User.",
                "user": {"email": "demo@example.com", "username": "demo", "rememberMe": True},
            },
        )

    monkeypatch.setattr("loginflow.client.requests.post", fake_post)
    fill(controller, email="  demo  ", remember=True)

    assert controller.submit() is FormState.SUCCESS
    assert captured["url"] == "http://testserver/api/login"
    assert captured["json"] == {"email": "demo", "password": "password123", "rememberMe": True}
    assert captured["timeout"] == 30
    assert controller.user["username"] == "demo"
    assert store.load() == "demo"
    assert "password123" not in store.path.read_text()


def test_success_without_remember_me_forgets_identifier(controller, store, monkeypatch):
    store.save("old@example.com")
    monkeypatch.setattr(
        "loginflow.client.requests.post",
        lambda url, json=None, timeout=None: FakeResponse(200, {"success": True, "message": "ok"}),
    )
    fill(controller)
    controller.submit()
    assert store.load() is None


def test_server_error_marks_field_and_keeps_values(controller, monkeypatch):
    monkeypatch.setattr(
        "loginflow.client.requests.post",
        lambda url, json=None, timeout=None: FakeResponse(
            401,
            {"success": False, "message": "Invalid email/username or password", "field": "email"},
        ),
    )
    fill(controller, password="wrong-password")

    assert controller.submit() is FormState.ERROR
    assert controller.field_errors == {"email": "Invalid email/username or password"}
    assert controller.message == "Invalid email/username or password"
    assert controller.values["email"] == "demo"
    assert controller.values["password"] == "wrong-password"


def test_editing_after_error_returns_to_idle(controller, monkeypatch):
    monkeypatch.setattr(
        "loginflow.client.requests.post",
        lambda url, json=None, timeout=None: FakeResponse(
            400, {"success": False, "message": "Password is too long", "field": "password"}
        ),
    )
    fill(controller)
    controller.submit()
    controller.set_field("password", "password123")
    assert controller.state is FormState.IDLE
    assert controller.field_errors == {}
    assert controller.message is None


def test_timeout_is_reported(controller, monkeypatch):
    def fake_post(url, json=None, timeout=None):
        raise requests.Timeout("read timed out")

    monkeypatch.setattr("loginflow.client.requests.post", fake_post)
    fill(controller)
    assert controller.submit() is FormState.ERROR
    assert "too long" in controller.message


def test_connection_error_is_reported(controller, monkeypatch):
    def fake_post(url, json=None, timeout=None):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr("loginflow.client.requests.post", fake_post)
    fill(controller)
    assert controller.submit() is FormState.ERROR
    assert controller.message.startswith("Connection error")


def test_prefill_from_store(store):
    store.save("demo@example.com")
    controller = LoginFormController(store=store)
    controller.prefill()
    assert controller.values["email"] == "demo@example.com"
    assert controller.values["rememberMe"] is True


def test_store_ignores_corrupt_file(store):
    store.path.write_text("not json")
    assert store.load() is None


def test_unknown_field_is_rejected(controller):
    with pytest.raises(KeyError):
        controller.set_field("username", "demo")


def test_controller_against_app(store, monkeypatch):
    app = create_app({"TESTING": True, "LOGIN_DELAY_RANGE": (0, 0)})
    test_client = app.test_client()

    def fake_post(url, json=None, timeout=None):
        response = test_client.post(url.replace("http://testserver", ""), json=json)
        return FakeResponse(response.status_code, response.get_json())

    monkeypatch.setattr("loginflow.client.requests.post", fake_post)
    controller = LoginFormController(base_url="http://testserver", store=store)

    fill(controller, email="demo@example.com", password="wrong-password")
    assert controller.submit() is FormState.ERROR
    assert "email" in controller.field_errors

    controller.set_field("password", "password123")
    assert controller.submit() is FormState.SUCCESS
    assert controller.user == {"email": "demo@example.com", "username": "demo", "rememberMe": False}


def test_client_rules_cap_field_length():
    errors = validate_fields("d" * 101, "p" * 101)
    assert errors["email"] == "Email/username must be at most 100 characters"
    assert errors["password"] == "Password must be at most 100 characters"


def test_set_field_checks_that_field_only(controller):
    controller.set_field("email", "ab")
    assert controller.field_errors == {
        "email": "Please enter a valid email or username (min 3 characters)"
    }

    controller.set_field("password", "")
    assert "password" not in controller.field_errors

    controller.set_field("password", "123")
    assert controller.field_errors["password"] == "Password must be at least 6 characters"

    controller.set_field("email", "  demo  ")
    assert "email" not in controller.field_errors
    assert "password" in controller.field_errors
    assert controller.validate_field("password") == "Password must be at least 6 characters"
