"""
Tests for environment configuration helpers, the health probe, request logging
and the error envelope.
"""

import logging

from fastapi.testclient import TestClient

import config
from database import Store
from errors import InvalidOperation, ValidationFailed
from main import create_app

logger = logging.getLogger(__name__)


# ============== Environment Parsing (4 tests) ==============


def test_int_from_env_default_when_missing(monkeypatch):
    monkeypatch.delenv("TEST_SETTING", raising=False)
    assert config._int_from_env("TEST_SETTING", 42, 1, 100) == 42


def test_int_from_env_out_of_range_falls_back(monkeypatch):
    """Test that out-of-range and malformed values fall back to the default."""
    monkeypatch.setenv("TEST_SETTING", "100000")
    assert config._int_from_env("TEST_SETTING", 42, 1, 100) == 42

    monkeypatch.setenv("TEST_SETTING", "lots")
    assert config._int_from_env("TEST_SETTING", 42, 1, 100) == 42

    monkeypatch.setenv("TEST_SETTING", "7")
    assert config._int_from_env("TEST_SETTING", 42, 1, 100) == 7
    logger.info("✓ Integer settings validated")


def test_bool_from_env(monkeypatch):
    monkeypatch.setenv("TEST_FLAG", "yes")
    assert config._bool_from_env("TEST_FLAG", False) is True

    monkeypatch.setenv("TEST_FLAG", "off")
    assert config._bool_from_env("TEST_FLAG", True) is False

    monkeypatch.delenv("TEST_FLAG")
    assert config._bool_from_env("TEST_FLAG", True) is True


def test_production_like(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "Staging")
    assert config.is_production_like() is True

    monkeypatch.setenv("ENVIRONMENT", "development")
    assert config.is_production_like() is False


# ============== Health (1 test) ==============


def test_health_reports_unreachable_database(monkeypatch, client: TestClient, store: Store):
    """Test that the health probe returns 500 when the database cannot be reached."""

    def failing_ping():
        raise ConnectionError("database is down")

    monkeypatch.setattr(store, "ping", failing_ping)

    response = client.get("/health")

    assert response.status_code == 500, f"Expected 500, got {response.status_code}: {response.json()}"
    assert response.json()["status"] == "unhealthy"
    assert response.json()["database"] == "disconnected"
    logger.info("✓ Health probe reports database failure")


# ============== Request Logging (2 tests) ==============


def test_request_log_records_status(caplog, client: TestClient):
    caplog.set_level(logging.INFO, logger="main")

    client.get("/health")

    assert any("GET /health" in record.message and "-> 200" in record.message for record in caplog.records)
    logger.info("✓ Request logged with status")


def test_request_log_records_unhandled_failure(caplog, store: Store):
    """Test that a request failing with an unhandled error still gets a log line."""
    app = create_app(store)

    @app.get("/explode")
    def explode():
        raise RuntimeError("boom")

    caplog.set_level(logging.INFO, logger="main")
    with TestClient(app, raise_server_exceptions=False) as test_client:
        response = test_client.get("/explode")

    assert response.status_code == 500, f"Expected 500, got {response.status_code}"
    assert response.json() == {"error": "Internal server error"}
    assert any("GET /explode" in record.message and "-> 500" in record.message for record in caplog.records)
    logger.info("✓ Failed request logged")


# ============== Error Envelope (2 tests) ==============


def test_error_body_omits_empty_details():
    assert InvalidOperation("Cannot do that").to_body() == {"error": "Cannot do that"}
    assert InvalidOperation().status_code == 400


def test_error_body_includes_details():
    details = [{"field": "name", "message": "Field required"}]
    error = ValidationFailed(details=details)

    assert error.status_code == 400
    assert error.to_body() == {"error": "Validation failed", "details": details}
