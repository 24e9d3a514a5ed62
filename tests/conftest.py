"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment variables are set before any app import so settings are built
from a known baseline rather than a developer's .env file.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("APP_RATE_LIMIT_THRESHOLD", "5")
os.environ.setdefault("APP_RATE_LIMIT_WINDOW_MS", "60000")
os.environ.setdefault("LOG_FORMAT", "json")

import logging

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.app_factory import create_app
from app.core.rate_limit import reset_rate_limiter


@pytest.fixture(autouse=True)
def fresh_rate_limiter():
    """Every test starts with no tracked clients."""
    reset_rate_limiter()
    yield
    reset_rate_limiter()


@pytest.fixture
def app() -> FastAPI:
    return create_app()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Test client that turns unhandled exceptions into 500 responses."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def capture_info(caplog: pytest.LogCaptureFixture) -> pytest.LogCaptureFixture:
    caplog.set_level(logging.INFO)
    return caplog


@pytest.fixture
def records_named(capture_info: pytest.LogCaptureFixture):
    """Return captured records whose message equals the given event name."""

    def _records(message: str, **fields) -> list[logging.LogRecord]:
        return [
            r
            for r in capture_info.records
            if r.getMessage() == message
            and all(getattr(r, key, None) == value for key, value in fields.items())
        ]

    return _records
