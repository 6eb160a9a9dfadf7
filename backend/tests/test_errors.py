import logging
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from forum import logging_config
from forum.logging_config import configure_logging
from support import build_test_client


def test_health_check_and_request_id():
    harness = build_test_client()

    response = harness.client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.headers["X-Request-ID"] == "req-123"
    assert harness.client.get("/health").headers["X-Request-ID"]


def test_unknown_route_uses_error_envelope():
    harness = build_test_client()

    response = harness.client.get("/api/v1/nope")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_malformed_json_is_a_bad_request():
    harness = build_test_client()

    response = harness.client.post(
        "/api/v1/auth/login",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request body"}


def test_missing_body_is_a_bad_request():
    harness = build_test_client()

    response = harness.client.post("/api/v1/auth/signup")

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request body"}


def test_unexpected_errors_are_masked():
    harness = build_test_client()

    def explode(email, password):
        raise RuntimeError("database on fire")

    harness.identity.sign_in_with_password = explode
    response = harness.client.post("/api/v1/auth/login", json={"email": "a@example.com", "password": "whatever1"})

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_bad_bearer_token_is_unauthorized():
    harness = build_test_client()

    response = harness.client.get("/api/v1/auth/verify", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_configure_logging_installs_one_handler():
    root_logger = logging.getLogger()
    previous_level = root_logger.level

    configure_logging("DEBUG")
    configure_logging("WARNING")

    try:
        assert root_logger.handlers.count(logging_config.handler) == 1
        assert root_logger.level == logging.WARNING
    finally:
        root_logger.removeHandler(logging_config.handler)
        root_logger.setLevel(previous_level)
