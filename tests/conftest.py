import httpx
import pytest
from fastapi.testclient import TestClient

from llm_gateway.config import (
    APIConfig,
    AuthConfig,
    BackendConfig,
    RateLimitConfig,
    Settings,
    XTTSConfig
)
from llm_gateway.main import create_app

from fakes import LIBRETRANSLATE_HOST, LOCALAI_HOST, OLLAMA_HOST, XTTS_HOST, FakeUpstream


def build_settings(tmp_path, **overrides):
    sections = {
        "api": APIConfig(log_level="warning"),
        "auth": AuthConfig(
            users_file=str(tmp_path / "data" / "users.json"),
            bcrypt_rounds=4,
            jwt_secret="test-access-secret-0123456789abcdef",
            jwt_refresh_secret="test-refresh-secret-0123456789abcdef",
        ),
        "rate_limit": RateLimitConfig(enabled=False),
        "xtts": XTTSConfig(url=f"http://{XTTS_HOST}"),
        "backends": BackendConfig(
            ollama_base_url=f"http://{OLLAMA_HOST}",
            localai_base_url=f"http://{LOCALAI_HOST}",
            libretranslate_url=f"http://{LIBRETRANSLATE_HOST}",
        ),
    }
    sections.update(overrides)
    return Settings(environment="testing", **sections)


@pytest.fixture
def settings(tmp_path):
    return build_settings(tmp_path)


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def client(settings, upstream):
    app = create_app(settings, transport=httpx.MockTransport(upstream.handler))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register_user(client):
    """Register a user and return (user, tokens)."""
    def _register(email="alice@example.com", username="alice", password="Secret123!"):
        response = client.post(
            "/api/auth/register",
            json={"email": email, "username": username, "password": password},
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return body["user"], body["tokens"]
    return _register


@pytest.fixture
def user_headers(register_user):
    _, tokens = register_user()
    return {"Authorization": f"Bearer {tokens['access_token']}"}


@pytest.fixture
def admin_headers(client):
    client.post("/api/auth/init-admin")
    response = client.post("/api/auth/login", json={"email": "admin@example.com", "password": "admin123"})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['tokens']['access_token']}"}
