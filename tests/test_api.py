"""
Tests for the HTTP API.

Coverage:
- Health check endpoint
- Share / preview / reveal flow
- Unknown, consumed, expired, malformed and tampered tokens all look alike
- Request validation
- Password generation endpoint
"""

from urllib.parse import unquote

import pytest

from api.server import NOT_FOUND, create_app
from snappass.settings import Settings
from vault.service import SecretService
from vault.store import MemoryStore
from vault.token import decode_token, encode_token


@pytest.fixture
def app(clock):
    settings = Settings(BASE_URL="https://share.example.com")
    app = create_app(settings, SecretService(MemoryStore(clock=clock)))
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as client:
        yield client


def share(client, password="hunter2", ttl="hour"):
    response = client.post("/api/secrets", json={"password": password, "ttl": ttl})
    assert response.status_code == 201
    return response.get_json()


class TestHealthEndpoint:

    def test_health_check(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "healthy"
        assert data["store"] == "memory"
        assert "version" in data
        assert "timestamp" in data


class TestShareAndReveal:

    def test_share_returns_token_and_link(self, client):
        data = share(client, ttl="day")
        assert data["link"] == f"https://share.example.com/{data['token']}"
        assert data["ttl"] == "day"
        assert data["expires_in_hours"] == 24

    def test_default_ttl_is_used(self, client):
        response = client.post("/api/secrets", json={"password": "x"})
        assert response.status_code == 201
        assert response.get_json()["ttl"] == "hour"

    def test_reveal_once(self, client):
        token = share(client)["token"]

        first = client.post("/api/secrets/reveal", json={"token": token})
        assert first.status_code == 200
        assert first.get_json() == {"password": "hunter2"}

        second = client.post("/api/secrets/reveal", json={"token": token})
        assert second.status_code == 404
        assert second.get_json() == NOT_FOUND

    def test_preview_does_not_consume(self, client):
        token = share(client)["token"]

        for _ in range(3):
            response = client.get(f"/api/secrets/{token}")
            assert response.status_code == 200
            assert response.get_json() == {"exists": True}

        client.post("/api/secrets/reveal", json={"token": token})
        assert client.get(f"/api/secrets/{token}").get_json() == {"exists": False}

    def test_preview_with_unquoted_path(self, client):
        """Key material may contain '/', which some clients send unescaped."""
        token = share(client)["token"]
        raw = unquote(token)
        assert client.get(f"/api/secrets/{raw}").get_json() == {"exists": True}

    def test_expired_secret(self, client, clock):
        token = share(client)["token"]
        clock.advance(minutes=61)
        response = client.post("/api/secrets/reveal", json={"token": token})
        assert response.status_code == 404
        assert response.get_json() == NOT_FOUND


class TestIndistinguishableFailures:

    def test_unknown_token(self, client):
        response = client.post("/api/secrets/reveal", json={"token": "0" * 32 + "~AAAA"})
        assert response.status_code == 404
        assert response.get_json() == NOT_FOUND

    def test_token_without_key_material(self, client):
        handle, _ = decode_token(share(client)["token"])
        response = client.post("/api/secrets/reveal", json={"token": handle})
        assert response.status_code == 404
        assert response.get_json() == NOT_FOUND

    def test_tampered_key_material(self, client):
        handle, _ = decode_token(share(client, "mine")["token"])
        _, foreign = decode_token(share(client, "theirs")["token"])
        response = client.post("/api/secrets/reveal", json={"token": encode_token(handle, foreign)})
        assert response.status_code == 404
        assert response.get_json() == NOT_FOUND


class TestValidation:

    @pytest.mark.parametrize("body", [{}, {"password": ""}, {"password": 42}])
    def test_share_requires_password(self, client, body):
        response = client.post("/api/secrets", json=body)
        assert response.status_code == 400

    def test_share_rejects_unknown_ttl(self, client):
        response = client.post("/api/secrets", json={"password": "x", "ttl": "year"})
        assert response.status_code == 400
        assert "year" in response.get_json()["error"]

    def test_share_rejects_non_json(self, client):
        response = client.post("/api/secrets", data="password=x")
        assert response.status_code == 400

    def test_reveal_requires_token(self, client):
        response = client.post("/api/secrets/reveal", json={})
        assert response.status_code == 400


class TestPasswordEndpoint:

    def test_generate(self, client):
        response = client.get("/api/password/generate")
        assert response.status_code == 200
        assert len(response.get_json()["password"]) == 24

    def test_generate_with_length(self, client):
        response = client.get("/api/password/generate?length=40")
        assert len(response.get_json()["password"]) == 40

    @pytest.mark.parametrize("length", ["0", "abc", "999999"])
    def test_generate_rejects_bad_length(self, client, length):
        response = client.get(f"/api/password/generate?length={length}")
        assert response.status_code == 400


class TestNonObjectBodies:

    @pytest.mark.parametrize("endpoint", ["/api/secrets", "/api/secrets/reveal"])
    @pytest.mark.parametrize("body", [["x"], "tok", 42, None])
    def test_rejected_with_400(self, client, endpoint, body):
        response = client.post(endpoint, json=body)
        assert response.status_code == 400
        assert "error" in response.get_json()
