"""
Tests for application-wide behaviour: security headers, rate limiting,
CORS, health, CSP reporting and settings validation.
"""
import pytest
from fastapi.testclient import TestClient

from conftest import make_settings
from main import create_app
from utils.security_headers import CONTENT_SECURITY_POLICY


class TestSecurityHeaders:

    def test_headers_present(self, client):
        response = client.get("/")

        assert response.headers["content-security-policy"] == CONTENT_SECURITY_POLICY
        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "DENY"
        assert response.headers["x-xss-protection"] == "1; mode=block"
        assert response.headers["referrer-policy"] == "strict-origin-when-cross-origin"
        assert "strict-transport-security" not in response.headers

    def test_hsts_in_production(self, fake_db):
        app = create_app(make_settings(ENVIRONMENT="production"), db=fake_db)
        with TestClient(app) as client:
            response = client.get("/")
        assert response.headers["strict-transport-security"].startswith("max-age=31536000")

    def test_headers_on_error_responses(self, client):
        response = client.post("/auth/login", json={"email": "nobody@x.com", "password": "Secret1!"})
        assert response.status_code == 404
        assert response.headers["x-frame-options"] == "DENY"


class TestRateLimiting:

    def test_limit_exceeded(self, fake_db):
        app = create_app(make_settings(RATE_LIMIT_ENABLED=True, RATE_LIMIT="3/15 minutes"), db=fake_db)
        with TestClient(app) as client:
            for _ in range(3):
                assert client.get("/health").status_code == 200
            response = client.get("/health")

        assert response.status_code == 429
        assert response.json() == {
            "error": "Too many requests from this IP, please try again later.",
            "retryAfter": "15 minutes",
        }

    def test_disabled_limiter_never_blocks(self, client):
        for _ in range(10):
            assert client.get("/health").status_code == 200


class TestCors:

    def test_whitelisted_origin(self, client):
        response = client.get("/", headers={"Origin": "http://localhost:5173"})
        assert response.headers["access-control-allow-origin"] == "http://localhost:5173"

    def test_unknown_origin_gets_no_cors_headers(self, client):
        response = client.get("/", headers={"Origin": "http://evil.example"})
        assert "access-control-allow-origin" not in response.headers


class TestMisc:

    def test_health_healthy(self, client):
        assert client.get("/health").json() == {"status": "healthy", "database": "mongo_connected"}

    def test_health_degraded(self, client, fake_db):
        fake_db.down = True
        assert client.get("/health").json() == {"status": "degraded", "database": "mongo_unavailable"}

    def test_startup_creates_indexes(self, client, fake_db):
        assert fake_db.users.indexes["u_email"]["unique"] is True
        assert fake_db.users.indexes["i_refresh_token"]["sparse"] is True

    def test_csp_violation_report(self, client):
        response = client.post(
            "/csp-violation-report",
            content=b'{"csp-report": {"violated-directive": "script-src"}}',
            headers={"Content-Type": "application/csp-report"},
        )
        assert response.status_code == 204

    def test_api_docs(self, client):
        assert client.get("/api-docs").status_code == 200
        paths = client.get("/openapi.json").json()["paths"]
        for path in ("/auth/register", "/auth/login", "/auth/refresh-token", "/auth/logout"):
            assert path in paths


class TestSettings:

    def test_cors_whitelist_split(self):
        settings = make_settings(CORS_WHITELIST="https://a.com, https://b.com,")
        assert settings.cors_origins == ["https://a.com", "https://b.com"]

    def test_secrets_must_differ(self):
        with pytest.raises(ValueError):
            make_settings(JWT_REFRESH_SECRET="test-access-secret")

    def test_secret_required(self):
        with pytest.raises(ValueError):
            make_settings(JWT_SECRET="")
