from __future__ import annotations

from fastapi.testclient import TestClient

from app.core.app_factory import create_app
from app.core.config import LogSettings, Settings


def test_preserves_incoming_request_id_header(client: TestClient):
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing(client: TestClient):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID")
    assert resp.headers.get("X-Request-Duration-ms") is not None


def test_rate_limited_responses_keep_request_id(client: TestClient):
    headers = {"X-Request-ID": "req-429", "X-Forwarded-For": "1.2.3.4"}
    payload = {"team1": {"ratings": [1000]}, "team2": {"ratings": [1000]}}

    for _ in range(2):
        client.post("/v1/matches/prediction", json=payload, headers=headers)
    resp = client.post("/v1/matches/prediction", json=payload, headers=headers)

    assert resp.status_code == 429
    assert resp.headers.get("X-Request-ID") == "req-429"


def test_uses_request_id_header_from_app_config(limiter):
    config = Settings(log=LogSettings(request_id_header="X-Correlation-ID"))
    client = TestClient(create_app(config=config, rate_limiter=limiter))

    resp = client.get("/health", headers={"X-Correlation-ID": "corr-1"})

    assert resp.headers.get("X-Correlation-ID") == "corr-1"
    assert "X-Request-ID" not in resp.headers
