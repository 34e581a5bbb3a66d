from __future__ import annotations

import logging
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_evaluator
from api.main import create_app
from config import Settings

NOT_FOUND = {"result": None, "error": "Endpoint not found. Use GET or POST to /v4/"}


class _BrokenEvaluator:
    def evaluate(self, expression):
        raise RuntimeError("evaluator state corrupted: secret detail")


@pytest.fixture
def client():
    with TestClient(create_app(Settings())) as c:
        yield c


def test_health_reports_ok_with_iso_timestamp(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert body["timestamp"].endswith("Z")
    parsed = datetime.fromisoformat(body["timestamp"].replace("Z", "+00:00"))
    assert parsed.tzinfo is not None


@pytest.mark.parametrize("method, url", [
    ("GET", "/unknown"),
    ("GET", "/v3/"),
    ("POST", "/health"),
    ("PUT", "/v4/"),
    ("DELETE", "/v4/"),
])
def test_unroutable_requests_get_404_envelope(client, method, url):
    response = client.request(method, url)

    assert response.status_code == 404
    assert response.json() == NOT_FOUND


def test_unhandled_failure_is_500_without_detail(caplog):
    app = create_app(Settings())
    app.dependency_overrides[get_evaluator] = lambda: _BrokenEvaluator()

    with TestClient(app, raise_server_exceptions=False) as c:
        with caplog.at_level(logging.ERROR, logger="matheval"):
            response = c.post("/v4/", json={"expr": "1 + 1"})

    assert response.status_code == 500
    assert response.json() == {"result": None, "error": "Internal server error"}
    assert "secret detail" not in response.text
    assert "Unhandled error" in caplog.text


def test_cors_allows_any_origin_by_default(client):
    response = client.get(
        "/v4/",
        params={"expr": "1+1"},
        headers={"Origin": "https://example.test"},
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"


def test_expression_length_limit_comes_from_settings():
    with TestClient(create_app(Settings(max_expression_length=5))) as c:
        response = c.get("/v4/", params={"expr": "1 + 2 + 3"})

    assert response.status_code == 400
    assert response.json()["error"] == "Expression too long (max 5 characters)"
