"""
Contract Gate: Error Format (RFC 9457 Problem Details)

Tests that all error responses follow RFC 9457 Problem Details format:
- Content-Type: application/problem+json
- Required fields: type, title, status, detail, instance
- instance must be opaque (no path/DB PK leaks)
- X-Request-ID is echoed on every response
"""

import re

from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient


def assert_problem_details(resp, expected_status: int):
    """Assert response follows RFC 9457 Problem Details format."""
    content_type = resp.headers.get("content-type", "")
    assert content_type.startswith("application/problem+json"), \
        f"Expected application/problem+json, got: {content_type}"

    data = resp.json()
    for field in ["type", "title", "status", "detail", "instance"]:
        assert field in data, f"Missing required field: {field}"

    assert data["status"] == expected_status

    instance = data["instance"]
    assert re.match(r"^urn:agency:trace:[A-Za-z0-9._:-]{8,}$", instance), \
        f"Invalid instance format: {instance}"
    assert "/" not in instance
    return data


class TestErrorFormat:
    """All error responses follow RFC 9457 Problem Details."""

    def test_401_without_credential(self, client):
        response = client.get("/api/v1/clients")

        assert response.status_code == 401
        data = assert_problem_details(response, 401)
        assert data["detail"] == "Not authenticated"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_401_with_garbage_credential(self, client):
        response = client.get("/api/v1/clients", headers={"Authorization": "Bearer not.a.jwt"})
        assert_problem_details(response, 401)

    def test_403_forbidden_hides_reason(self, client, factory, headers_for):
        manager = factory.user("manager")

        response = client.post("/api/v1/clients", json={"name": "Acme"}, headers=headers_for(manager))

        data = assert_problem_details(response, 403)
        assert data["detail"] == "Insufficient permissions"
        assert "manager" not in data["detail"]

    def test_404_not_found(self, client, owner_headers):
        response = client.get("/api/v1/clients/does-not-exist", headers=owner_headers)

        data = assert_problem_details(response, 404)
        assert data["detail"] == "Client not found"
        assert data["type"].endswith("/not-found")

    def test_404_unknown_route(self, client):
        response = client.get("/api/v1/nowhere")
        assert_problem_details(response, 404)

    def test_409_conflict(self, client, owner_headers):
        client.post("/api/v1/clients", json={"name": "Acme", "slug": "acme"}, headers=owner_headers)
        response = client.post("/api/v1/clients", json={"name": "Acme 2", "slug": "acme"}, headers=owner_headers)

        data = assert_problem_details(response, 409)
        assert data["detail"] == "A client with this slug already exists"

    def test_422_validation_error(self, client):
        response = client.post("/api/v1/auth/login", json={"password": "x"})

        data = assert_problem_details(response, 422)
        assert data["detail"].startswith("Invalid field 'body.email'")

    def test_400_invalid_input(self, client, owner, owner_headers):
        response = client.patch(
            f"/api/v1/users/{owner.id}/status", json={"status": "banned"}, headers=owner_headers
        )

        data = assert_problem_details(response, 400)
        assert data["detail"] == "Status must be active or inactive"

    def test_http_exception_handler_in_isolation(self):
        from agency_api.main import register_exception_handlers

        test_app = FastAPI()
        register_exception_handlers(test_app)

        @test_app.get("/forbidden")
        async def forbidden_endpoint():
            raise HTTPException(status_code=403, detail="Forbidden resource")

        response = TestClient(test_app).get("/forbidden")
        data = assert_problem_details(response, 403)
        assert data["detail"] == "Forbidden resource"


class TestRequestId:
    def test_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-abc-12345"})
        assert response.headers["X-Request-ID"] == "req-abc-12345"

    def test_request_id_is_generated(self, client):
        response = client.get("/health")
        assert len(response.headers["X-Request-ID"]) == 36

    def test_instance_uses_request_id(self, client):
        response = client.get("/api/v1/clients", headers={"X-Request-ID": "trace-12345678"})
        assert response.json()["instance"] == "urn:agency:trace:trace-12345678"


class TestHealth:
    def test_health_reports_database(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "up"
        assert body["version"] == "1.0.0"

    def test_api_health_alias(self, client):
        assert client.get("/api/health").json()["status"] == "healthy"
