import httpx
import pytest
from fastapi.testclient import TestClient

from llm_gateway.config import APIConfig, RateLimitConfig
from llm_gateway.main import create_app

from conftest import build_settings


@pytest.fixture
def make_client(tmp_path, upstream):
    clients = []

    def _make(**overrides):
        app = create_app(build_settings(tmp_path, **overrides), transport=httpx.MockTransport(upstream.handler))
        test_client = TestClient(app)
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        test_client.__exit__(None, None, None)


def test_root_lists_endpoints(client):
    body = client.get("/").json()

    assert body["endpoints"]["tts"] == "/api/tts"
    assert body["monitoring"]["health"] == "/health"


def test_unknown_route_is_404_json(client):
    response = client.get("/no/such/route")

    assert response.status_code == 404
    assert response.json() == {"error": "Not found"}


def test_metrics_report_speaker_cache(client):
    before = client.get("/metrics").json()
    client.get("/api/tts/voices")
    after = client.get("/metrics").json()

    assert before["speaker_cache"]["loaded"] is False
    assert after["speaker_cache"]["loaded"] is True
    assert after["rate_limiting"]["enabled"] is False
    assert 0 <= after["memory_percent"] <= 100


def test_rate_limit_applies_to_api_routes_only(make_client):
    client = make_client(rate_limit=RateLimitConfig(enabled=True, max_requests=2, window_minutes=1))

    statuses = [client.get("/api/tts/voices").status_code for _ in range(3)]

    assert statuses == [200, 200, 429]
    blocked = client.get("/api/tts/voices")
    assert blocked.json()["error"]["type"] == "rate_limit_exceeded"
    assert "retry-after" in blocked.headers
    assert all(client.get("/health").status_code == 200 for _ in range(5))


def test_oversized_body_is_rejected(make_client):
    client = make_client(api=APIConfig(log_level="warning", max_body_bytes=100))

    response = client.post("/api/tts", json={"text": "x" * 500, "language": "en"})

    assert response.status_code == 413
    assert response.json()["error"]["type"] == "request_too_large"


def test_cors_headers_for_configured_origin(make_client):
    client = make_client(api=APIConfig(log_level="warning", cors_origins=["http://app.test"]))

    response = client.get("/health", headers={"Origin": "http://app.test"})

    assert response.headers["access-control-allow-origin"] == "http://app.test"


def test_rate_limited_responses_report_remaining_quota(make_client):
    client = make_client(rate_limit=RateLimitConfig(enabled=True, max_requests=5, window_minutes=1))

    first = client.get("/api/translate/languages")
    second = client.get("/api/translate/languages")

    assert first.headers["x-ratelimit-limit"] == "5"
    assert int(second.headers["x-ratelimit-remaining"]) < int(first.headers["x-ratelimit-remaining"])
    assert "x-ratelimit-limit" not in client.get("/health").headers
