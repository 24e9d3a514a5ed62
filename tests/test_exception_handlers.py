"""Tests for global exception handlers.

Validates that policy rejections and faults are rendered with the right
status codes and body shapes, and that stack traces stay in the logs.
"""

import asyncio
import json
import logging
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.errors import PolicyRejectionError, RequestFaultError
from app.core.exception_handlers import general_exception_handler, setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def handler_client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers, raise_server_exceptions=False)


class TestRequestFaultHandler:
    def test_declared_status_and_body(self, app_with_handlers: FastAPI, handler_client: TestClient):
        @app_with_handlers.get("/fault")
        async def endpoint():
            raise RequestFaultError(code="demo", message="Something went wrong!", status=500)

        resp = handler_client.get("/fault")

        assert resp.status_code == 500
        assert resp.json() == {"error": {"message": "Something went wrong!", "status": 500}}

    def test_non_default_status_is_preserved(self, app_with_handlers: FastAPI, handler_client: TestClient):
        @app_with_handlers.get("/unavailable")
        async def endpoint():
            raise RequestFaultError(code="upstream", message="Upstream down", status=503)

        resp = handler_client.get("/unavailable")

        assert resp.status_code == 503
        assert resp.json() == {"error": {"message": "Upstream down", "status": 503}}

    def test_status_defaults_to_500(self, app_with_handlers: FastAPI, handler_client: TestClient):
        @app_with_handlers.get("/default")
        async def endpoint():
            raise RequestFaultError(code="x", message="boom")

        resp = handler_client.get("/default")

        assert resp.status_code == 500
        assert resp.json()["error"]["status"] == 500

    def test_fault_logged_with_traceback(
        self, app_with_handlers: FastAPI, handler_client: TestClient, capture_info
    ):
        @app_with_handlers.get("/logged")
        async def endpoint():
            raise RequestFaultError(code="x", message="boom")

        handler_client.get("/logged")

        faults = [r for r in capture_info.records if r.getMessage() == "request.fault"]
        assert len(faults) == 1
        assert faults[0].levelno == logging.ERROR
        assert faults[0].exc_info is not None


class TestPolicyRejectionHandler:
    def test_flat_error_body(self, app_with_handlers: FastAPI, handler_client: TestClient):
        @app_with_handlers.get("/reject")
        async def endpoint():
            raise PolicyRejectionError(code="nope", message="Not allowed", status_code=403)

        resp = handler_client.get("/reject")

        assert resp.status_code == 403
        assert resp.json() == {"error": "Not allowed"}


class TeapotError(Exception):
    def __init__(self, message: str, status: int) -> None:
        super().__init__(message)
        self.status = status


class TestGeneralExceptionHandler:
    def test_plain_exception_returns_its_message_with_500(
        self, app_with_handlers: FastAPI, handler_client: TestClient
    ):
        @app_with_handlers.get("/crash")
        async def endpoint():
            raise RuntimeError("Something went wrong!")

        resp = handler_client.get("/crash")

        assert resp.status_code == 500
        assert resp.json() == {"error": {"message": "Something went wrong!", "status": 500}}

    def test_status_attribute_is_honoured(
        self, app_with_handlers: FastAPI, handler_client: TestClient
    ):
        @app_with_handlers.get("/teapot")
        async def endpoint():
            raise TeapotError("I'm a teapot", status=418)

        resp = handler_client.get("/teapot")

        assert resp.status_code == 418
        assert resp.json() == {"error": {"message": "I'm a teapot", "status": 418}}

    @pytest.mark.parametrize("status", [200, 302, 999, "418"])
    def test_unusable_status_falls_back_to_500(self, status):
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        response = asyncio.run(general_exception_handler(request, TeapotError("odd", status)))

        assert response.status_code == 500
        assert json.loads(bytes(response.body))["error"] == {"message": "odd", "status": 500}

    def test_empty_message_gets_generic_text(self):
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        response = asyncio.run(general_exception_handler(request, ValueError()))

        data = json.loads(bytes(response.body))
        assert data == {"error": {"message": "Internal Server Error", "status": 500}}

    def test_stack_trace_logged_but_never_returned(self, capture_info):
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        response = asyncio.run(general_exception_handler(request, ValueError("Test error")))

        response_text = bytes(response.body).decode()
        assert "Traceback" not in response_text
        assert "ValueError" not in response_text
        logged = [r for r in capture_info.records if r.getMessage() == "unhandled_exception"]
        assert len(logged) == 1
        assert logged[0].exc_info is not None


def test_setup_registers_all_handlers(app_with_handlers: FastAPI):
    assert PolicyRejectionError in app_with_handlers.exception_handlers
    assert RequestFaultError in app_with_handlers.exception_handlers
    assert Exception in app_with_handlers.exception_handlers


def test_multiple_handler_setups_does_not_fail():
    app = FastAPI()

    setup_exception_handlers(app)
    setup_exception_handlers(app)

    assert RequestFaultError in app.exception_handlers
