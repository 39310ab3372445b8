"""Application-level tests - health, metrics, error envelope and rate limiting"""
from unittest.mock import patch

import pytest
from fastapi import status
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from videotube.core.config import settings
from videotube.core.otel import initialize_otel, setup_otel_logging
from videotube.main import app


@pytest.fixture
def unsafe_client(db, mock_redis, media_storage, search_client, upload_dir):
    """Test client that returns 500 responses instead of re-raising"""
    with patch("videotube.main.initialize_otel", return_value=False):
        with patch("videotube.main.ping", return_value=True):
            with TestClient(app, raise_server_exceptions=False) as test_client:
                yield test_client


@pytest.mark.critical
class TestHealthCheck:
    """Test /api/v1/healthcheck"""

    def test_healthcheck(self, client):
        response = client.get("/api/v1/healthcheck")
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "status_code": 200,
            "data": "OK",
            "message": "Health Check Passed",
            "success": True,
        }

    def test_ready(self, client, search_client):
        with patch("videotube.api.healthcheck.mongo.ping", return_value=True):
            response = client.get("/api/v1/healthcheck/ready")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"] == {"database": "ok", "search": "ok"}

    def test_ready_with_search_down(self, client, search_client):
        search_client.ping.return_value = False
        with patch("videotube.api.healthcheck.mongo.ping", return_value=True):
            response = client.get("/api/v1/healthcheck/ready")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["search"] == "degraded"

    def test_ready_with_database_down(self, client):
        with patch("videotube.api.healthcheck.mongo.ping", side_effect=ServerSelectionTimeoutError("no servers")):
            response = client.get("/api/v1/healthcheck/ready")
        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["success"] is False

    def test_metrics(self, client):
        client.get("/api/v1/healthcheck")
        response = client.get("/metrics")
        assert response.status_code == status.HTTP_200_OK
        assert "videotube_healthcheck_requests_total" in response.text


@pytest.mark.high
class TestErrorEnvelope:
    """Every error shares the same JSON shape"""

    def test_unknown_route(self, client):
        response = client.get("/api/v1/nope")
        assert response.status_code == status.HTTP_404_NOT_FOUND
        body = response.json()
        assert body["success"] is False
        assert body["data"] is None
        assert body["status_code"] == 404

    def test_unauthorized(self, client):
        response = client.get("/api/v1/tweets")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["message"] == "Unauthorized request"

    def test_validation_error(self, client, headers):
        response = client.post("/api/v1/tweets", json={}, headers=headers)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["message"] == "Validation failed"
        assert body["errors"][0]["field"] == "content"

    def test_invalid_object_id(self, client, headers):
        response = client.get("/api/v1/videos/not-an-id", headers=headers)
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_unexpected_error_is_500(self, unsafe_client, headers):
        with patch("videotube.services.tweet_service.list_tweets", side_effect=RuntimeError("boom")):
            response = unsafe_client.get("/api/v1/tweets", headers=headers)
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        body = response.json()
        assert body["message"] == "Internal server error"
        assert "stack" not in body


@pytest.mark.high
class TestRateLimiting:
    """Fixed-window rate limiting per client IP"""

    def test_state_changing_requests_use_strict_limit(self, client, mock_redis):
        with patch.object(settings, "RATE_LIMIT_STRICT_REQUESTS", 2):
            codes = [client.post("/api/v1/users/login", json={}).status_code for _ in range(3)]
        assert codes[:2] == [400, 400]
        assert codes[2] == status.HTTP_429_TOO_MANY_REQUESTS

    def test_rate_limited_response_shape(self, client, mock_redis):
        with patch.object(settings, "RATE_LIMIT_REQUESTS", 1):
            client.get("/api/v1/search/s")
            response = client.get("/api/v1/search/s")
        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert response.json()["success"] is False

    def test_health_endpoints_are_exempt(self, client, mock_redis):
        with patch.object(settings, "RATE_LIMIT_REQUESTS", 1):
            codes = {client.get("/api/v1/healthcheck").status_code for _ in range(3)}
        assert codes == {200}

    def test_clients_are_limited_separately(self, client, mock_redis):
        with patch.object(settings, "RATE_LIMIT_REQUESTS", 1):
            client.get("/api/v1/search/s", headers={"X-Forwarded-For": "10.0.0.1"})
            response = client.get("/api/v1/search/s", headers={"X-Forwarded-For": "10.0.0.2"})
        assert response.status_code != status.HTTP_429_TOO_MANY_REQUESTS


@pytest.mark.medium
class TestTelemetry:
    """OpenTelemetry stays off without an exporter endpoint"""

    def test_disabled_without_endpoint(self):
        with patch.object(settings, "OTEL_EXPORTER_OTLP_ENDPOINT", ""):
            assert initialize_otel() is False
            assert setup_otel_logging() is False
