"""Integration tests for the unguarded example endpoints."""

import pytest
from httpx import AsyncClient

VALID_BODY = {"name": "Test User", "email": "test@example.com"}


@pytest.mark.integration
class TestExampleEndpoints:
    """Envelope and validation through the full middleware stack."""

    async def test_example_1(self, client: AsyncClient) -> None:
        """GET /1 returns an empty object in the success envelope."""
        response = await client.get("/api/example/1?page=2")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == 200
        assert body["message"] == "Example1 endpoint works"
        assert body["data"] == {}
        assert body["trace"]["method"] == "GET"
        assert body["trace"]["path"] == "/api/example/1?page=2"
        assert body["trace"]["responseTime"].endswith("ms")
        assert len(body["trace"]["hash"]) == 64

    async def test_example_2(self, client: AsyncClient) -> None:
        """GET /2 returns null data."""
        response = await client.get("/api/example/2")

        assert response.status_code == 200
        assert response.json()["data"] is None

    async def test_example_3_echoes_body(self, client: AsyncClient) -> None:
        """A valid body is echoed back."""
        response = await client.post("/api/example/3", json=VALID_BODY)

        assert response.status_code == 200
        assert response.json()["data"] == VALID_BODY

    async def test_example_3_sanitizes(self, client: AsyncClient) -> None:
        """Sanitized fields reach the handler escaped."""
        body = {"name": "<b>Test</b>", "email": "test@example.com"}

        response = await client.post("/api/example/3", json=body)

        assert response.status_code == 200
        assert response.json()["data"]["name"] == "&lt;b&gt;Test&lt;&#x2F;b&gt;"

    async def test_example_3_accepts_form(self, client: AsyncClient) -> None:
        """URL-encoded bodies are validated the same way."""
        response = await client.post("/api/example/3", data=VALID_BODY)

        assert response.status_code == 200
        assert response.json()["data"] == VALID_BODY

    async def test_example_3_validation_errors(self, client: AsyncClient) -> None:
        """Every failing field is reported in one 422 problem."""
        response = await client.post("/api/example/3", json={"email": "not-an-email"})

        assert response.status_code == 422
        body = response.json()
        assert body["type"] == "https://api.test/errors/validation_error"
        assert body["title"] == "Validation Failed"
        assert body["instance"] == "/api/example/3"
        assert {"field": "name", "message": "Field Is Required"} in body["errors"]
        assert {"field": "email", "message": "Invalid Email"} in body["errors"]

    async def test_duplicate_body_key(self, client: AsyncClient) -> None:
        """A key repeated in the raw JSON body is rejected."""
        response = await client.post(
            "/api/example/3",
            content=b'{"name": "Test User", "name": "Other", "email": "test@example.com"}',
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 422
        messages = [issue["message"] for issue in response.json()["errors"]]
        assert "Duplicate Body Parameter" in messages

    async def test_malformed_json(self, client: AsyncClient) -> None:
        """Undecodable JSON is a bad request."""
        response = await client.post(
            "/api/example/3",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["type"].endswith("/bad_request")
        assert body["message"] == "Malformed JSON Body"

    @pytest.mark.parametrize("env_overrides", [{"MAX_BODY_BYTES": "64"}])
    async def test_payload_too_large(self, client: AsyncClient) -> None:
        """Bodies over the configured limit are refused."""
        response = await client.post(
            "/api/example/3", json={"name": "x" * 100, "email": "test@example.com"}
        )

        assert response.status_code == 413
        assert response.json()["type"].endswith("/payload_too_large")


@pytest.mark.integration
class TestFrameworkErrors:
    """Routing failures use the problem envelope."""

    async def test_not_found(self, client: AsyncClient) -> None:
        """Unknown paths are not_found problems."""
        response = await client.get("/api/nowhere?x=1")

        assert response.status_code == 404
        body = response.json()
        assert body["type"] == "https://api.test/errors/not_found"
        assert body["instance"] == "/api/nowhere?x=1"
        assert "trace" in body

    async def test_method_not_allowed(self, client: AsyncClient) -> None:
        """Wrong methods are method_not_allowed problems."""
        response = await client.post("/api/example/1")

        assert response.status_code == 405
        assert response.json()["type"].endswith("/method_not_allowed")
