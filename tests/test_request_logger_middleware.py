from __future__ import annotations

from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from app.core.middleware import request_logger_middleware


def _echo_app(logger_layers: int) -> FastAPI:
    app = FastAPI()

    @app.post("/echo")
    async def echo(request: Request):
        return {
            "body": (await request.body()).decode(),
            "query": dict(request.query_params),
            "headers": {"x-probe": request.headers.get("x-probe")},
        }

    for _ in range(logger_layers):
        app.middleware("http")(request_logger_middleware)
    return app


def test_records_method_path_and_iso_timestamp(client: TestClient, records_named):
    client.get("/greet", params={"name": "Ada"})

    received = records_named("request.received", path="/greet")
    assert len(received) == 1
    record = received[0]
    assert record.method == "GET"
    assert record.query == "name=Ada"
    # Raises if the timestamp is not ISO-8601
    datetime.fromisoformat(record.received_at)


def test_logger_runs_before_rate_limiter_rejects(monkeypatch, client: TestClient, records_named):
    from app.core.config import settings

    monkeypatch.setattr(settings.app, "rate_limit_threshold", 1)
    client.get("/")
    resp = client.get("/")

    assert resp.status_code == 429
    assert len(records_named("request.received", path="/")) == 2


def test_repeated_logger_does_not_change_behaviour(records_named):
    kwargs = {
        "params": {"a": "1"},
        "content": b"payload",
        "headers": {"X-Probe": "yes"},
    }
    once = TestClient(_echo_app(1)).post("/echo", **kwargs)
    thrice = TestClient(_echo_app(3)).post("/echo", **kwargs)

    assert once.status_code == thrice.status_code == 200
    assert once.json() == thrice.json()
    assert len(records_named("request.received", path="/echo")) == 4
