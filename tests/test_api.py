"""
Status API Tests
----------------
Tests for the FastAPI surface over the platform registry.
"""

import pytest
from fastapi.testclient import TestClient

from platforms.api import app


@pytest.fixture
def client():
    return TestClient(app)


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["environment"] == "development"
        assert body["auth_enabled"] is False

    def test_health_reports_environment(self, client, monkeypatch):
        monkeypatch.setenv("BLACKROAD_ENV", "production")

        assert client.get("/healthz").json()["environment"] == "production"


class TestPlatforms:

    def test_list(self, client):
        response = client.get("/platforms")

        assert response.status_code == 200
        assert len(response.json()) == 11

    def test_filter_by_category(self, client):
        names = [p["name"] for p in client.get("/platforms", params={"category": "productivity"}).json()]

        assert names == ["Asana", "Notion"]

    def test_single_platform_state(self, client, monkeypatch):
        body = client.get("/platforms/github").json()
        assert body["configured"] is False
        assert body["missing"] == ["GITHUB_ACCESS_TOKEN"]

        monkeypatch.setenv("GITHUB_ACCESS_TOKEN", "t")
        body = client.get("/platforms/GitHub").json()
        assert body["configured"] is True
        assert body["missing"] == []

    def test_unknown_platform(self, client):
        assert client.get("/platforms/warp").status_code == 404


class TestPlatformHealth:

    def test_not_configured(self, client):
        response = client.get("/platforms/stripe/health")

        assert response.status_code == 409
        assert response.json()["detail"]["missing"] == ["STRIPE_API_KEY"]

    def test_unknown(self, client):
        assert client.get("/platforms/warp/health").status_code == 404

    def test_configured(self, client, monkeypatch):
        monkeypatch.setenv("STRIPE_API_KEY", "sk_test")

        body = client.get("/platforms/stripe/health").json()

        assert body["name"] == "stripe"
        assert body["status"] == "ok"
        assert body["webhook_configured"] is False

    def test_docker_without_credentials(self, client):
        body = client.get("/platforms/docker/health").json()

        assert body["status"] == "ok"
        assert body["host"] == "http://localhost:2375"

    def test_requires_token_when_configured(self, client, monkeypatch):
        monkeypatch.setenv("BLACKROAD_PLATFORMS_TOKEN", "s3cret")
        monkeypatch.setenv("GITHUB_ACCESS_TOKEN", "t")

        assert client.get("/platforms/github/health").status_code == 401
        assert client.get(
            "/platforms/github/health",
            headers={"Authorization": "Bearer wrong"},
        ).status_code == 401

        response = client.get("/platforms/github/health", headers={"Authorization": "Bearer s3cret"})
        assert response.status_code == 200
        assert response.json()["configured"] is True


class TestEnvTemplate:

    def test_plain_text(self, client):
        response = client.get("/env-template")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "HUGGINGFACE_API_KEY=" in response.text
