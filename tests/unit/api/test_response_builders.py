"""Unit tests for neacore.api.utils.responses module."""

import time

import orjson
import pytest
from starlette.requests import Request

from neacore.api.utils.responses import (
    ORJSONResponse,
    build_trace,
    error_response,
    format_response_time,
    request_instance,
    success_response,
)
from neacore.core.exceptions import ErrorKind


def make_request(path: str = "/api/example/1", query: str = "", method: str = "GET") -> Request:
    """Build a bare ASGI request."""
    return Request(
        {
            "type": "http",
            "method": method,
            "path": path,
            "query_string": query.encode(),
            "headers": [],
            "scheme": "http",
            "server": ("test", 80),
        }
    )


@pytest.mark.unit
class TestTrace:
    """Trace block fields."""

    def test_instance_keeps_query(self) -> None:
        """The query string stays part of the instance."""
        assert request_instance(make_request(query="page=2")) == "/api/example/1?page=2"
        assert request_instance(make_request()) == "/api/example/1"

    def test_response_time_without_start(self) -> None:
        """Requests that skipped the context middleware report zero."""
        assert format_response_time(make_request()) == "0.000ms"

    def test_response_time_format(self) -> None:
        """Elapsed time is rendered in milliseconds with three decimals."""
        request = make_request()
        request.state.started_at = time.perf_counter()

        assert format_response_time(request).endswith("ms")
        assert "." in format_response_time(request)

    def test_trace_uses_fingerprint(self) -> None:
        """The hash is the request fingerprint when one was computed."""
        request = make_request(method="POST")
        request.state.fingerprint = "abc123"

        trace = build_trace(request)

        assert trace.method == "POST"
        assert trace.hash == "abc123"
        assert "responseTime" in trace.model_dump(by_alias=True)

    def test_trace_hash_defaults_to_unknown(self) -> None:
        """Without a fingerprint the hash is unknown."""
        assert build_trace(make_request()).hash == "unknown"


@pytest.mark.unit
class TestEnvelopes:
    """Success and problem envelopes."""

    def test_success_response(self) -> None:
        """The success envelope carries data and the trace."""
        response = success_response(make_request(), {"id": 1}, "Created", status_code=201)

        body = orjson.loads(response.body)
        assert response.status_code == 201
        assert body["status"] == 201
        assert body["message"] == "Created"
        assert body["data"] == {"id": 1}
        assert body["trace"]["path"] == "/api/example/1"

    def test_error_response_omits_empty_fields(self) -> None:
        """errors and message are only present when given."""
        response = error_response(make_request(), ErrorKind.NOT_FOUND)

        body = orjson.loads(response.body)
        assert response.status_code == 404
        assert body["type"].endswith("/not_found")
        assert body["instance"] == "/api/example/1"
        assert "errors" not in body
        assert "message" not in body

    def test_error_response_with_detail(self) -> None:
        """Validation issues and the gateway message are included."""
        issues = [{"field": "name", "message": "Field Is Required"}]

        response = error_response(
            make_request(query="a=1"),
            ErrorKind.VALIDATION_ERROR,
            errors=issues,
            message="Validation Failed",
            headers={"Retry-After": "60"},
        )

        body = orjson.loads(response.body)
        assert response.status_code == 422
        assert response.headers["retry-after"] == "60"
        assert body["errors"] == issues
        assert body["message"] == "Validation Failed"
        assert body["instance"] == "/api/example/1?a=1"

    def test_unknown_kind(self) -> None:
        """Identifiers outside the vocabulary render as unknown_error."""
        body = orjson.loads(error_response(make_request(), "no_such_kind").body)

        assert body["type"].endswith("/unknown_error")
        assert body["status"] == 400

    def test_orjson_response_non_str_keys(self) -> None:
        """Integer keys are serialized."""
        assert ORJSONResponse({1: "a"}).body == b'{"1":"a"}'
