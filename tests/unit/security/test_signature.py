"""Unit tests for neacore.security.signature module."""

import hashlib
from types import SimpleNamespace
from typing import Any, cast

import pytest
from pytest_mock import MockerFixture
from starlette.requests import Request

from neacore.core.exceptions import ForbiddenError, UnauthorizedError
from neacore.security.signature import (
    INVALID_SIGNATURE,
    SECRET_MISSING,
    SIGNATURE_MISSING,
    build_data_string,
    format_number,
    check_signature,
    generate_hash,
    resolve_client_auth,
    verify_signature,
)
from neacore.validation import RequestPayload


def sign(data: str, secret: str) -> str:
    """Compute a signature the way clients do."""
    return hashlib.sha256(f"{data}{secret}".encode()).hexdigest()


def fake_request(headers: dict[str, str]) -> Request:
    """Build a stand-in exposing only headers and state."""
    return cast("Request", SimpleNamespace(headers=headers, state=SimpleNamespace()))


@pytest.mark.unit
class TestBuildDataString:
    """Canonical string construction."""

    def test_single_field(self) -> None:
        """A single body field renders as key=value."""
        assert build_data_string({}, {"name": "Test"}) == "name=Test"

    def test_empty_map(self) -> None:
        """No parameters render as an empty string."""
        assert build_data_string({}, {}) == ""

    def test_sorted_and_merged_body_wins(self) -> None:
        """Keys are sorted; the body overrides the query on collision."""
        result = build_data_string({"b": "query", "z": "1"}, {"b": "body", "a": "2"})

        assert result == "a=2&b=body&z=1"

    def test_credentials_excluded(self) -> None:
        """The signature and secret never enter the canonical string."""
        result = build_data_string(
            {"x-secret": "s", "page": "1"}, {"x-signature": "abc", "name": "n"}
        )

        assert result == "name=n&page=1"

    def test_value_rendering(self) -> None:
        """Lists join with commas, objects render as compact JSON."""
        body: dict[str, Any] = {
            "tags": ["a", "b", None],
            "meta": {"k": 1, "n": [1, 2]},
            "flag": True,
            "none": None,
            "count": 3.0,
        }

        result = build_data_string({}, body)

        assert result == 'count=3&flag=true&meta={"k":1,"n":[1,2]}&none=null&tags=a,b,'

    def test_nested_values_render_like_javascript(self) -> None:
        """Nested numbers, lists and objects follow the client rendering."""
        body: dict[str, Any] = {
            "meta": {"price": 10.0, "rate": 1e-07, "missing": float("nan")},
            "grid": [["a", "b"], [1.0, None]],
            "items": [{"a": 1}, "x"],
            "tiny": 1e-07,
        }

        result = build_data_string({}, body)

        assert result == (
            "grid=a,b,1,"
            "&items=[object Object],x"
            '&meta={"price":10,"rate":1e-7,"missing":null}'
            "&tiny=1e-7"
        )

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (10.0, "10"),
            (-2.5, "-2.5"),
            (0.5, "0.5"),
            (-0.0, "0"),
            (0.000001, "0.000001"),
            (1e-07, "1e-7"),
            (1.25e-10, "1.25e-10"),
            (1e20, "100000000000000000000"),
            (1e21, "1e+21"),
            (1.5e22, "1.5e+22"),
            (float("inf"), "Infinity"),
            (float("nan"), "NaN"),
        ],
    )
    def test_format_number(self, value: float, expected: str) -> None:
        """Floats use JavaScript number notation."""
        assert format_number(value) == expected


@pytest.mark.unit
class TestResolveClientAuth:
    """Credential lookup order."""

    def test_header_then_body_then_query(self) -> None:
        """The first non-empty value wins."""
        assert resolve_client_auth("x-secret", {"x-secret": "h"}, {"x-secret": "b"}, {"x-secret": "q"}) == "h"
        assert resolve_client_auth("x-secret", {"x-secret": ""}, {"x-secret": "b"}, {"x-secret": "q"}) == "b"
        assert resolve_client_auth("x-secret", {}, {}, {"x-secret": "q"}) == "q"

    def test_missing(self) -> None:
        """None when no source has the credential."""
        assert resolve_client_auth("x-secret", {}, {}, {}) is None


@pytest.mark.unit
class TestCheckSignature:
    """Signature verification outcomes."""

    def test_generate_hash(self) -> None:
        """The hash is the SHA-256 of the data followed by the secret."""
        expected = hashlib.sha256(b"name=TestMYSECRET").hexdigest()

        assert generate_hash("name=Test", "MYSECRET") == expected

    def test_valid_signature(self) -> None:
        """A correct signature passes."""
        payload = RequestPayload(body={"name": "Test"})
        headers = {"x-signature": sign("name=Test", "MYSECRET"), "x-secret": "MYSECRET"}

        check_signature(headers, payload, signature_key="x-signature", secret_key="x-secret")

    def test_credentials_in_body_and_query(self) -> None:
        """Credentials may be sent as fields instead of headers."""
        payload = RequestPayload(
            body={"name": "Test", "x-signature": sign("name=Test&page=2", "S")},
            query={"page": "2", "x-secret": "S"},
        )

        check_signature({}, payload, signature_key="x-signature", secret_key="x-secret")

    def test_missing_signature(self) -> None:
        """No signature is unauthorized."""
        with pytest.raises(UnauthorizedError) as exc_info:
            check_signature(
                {"x-secret": "S"}, RequestPayload(), signature_key="x-signature", secret_key="x-secret"
            )

        assert exc_info.value.message == SIGNATURE_MISSING

    def test_missing_secret(self) -> None:
        """A signature without a secret is forbidden."""
        with pytest.raises(ForbiddenError) as exc_info:
            check_signature(
                {"x-signature": "abc"}, RequestPayload(), signature_key="x-signature", secret_key="x-secret"
            )

        assert exc_info.value.message == SECRET_MISSING

    def test_arbitrary_signature_rejected(self) -> None:
        """A wrong signature is forbidden."""
        payload = RequestPayload(body={"name": "Test"})

        with pytest.raises(ForbiddenError) as exc_info:
            check_signature(
                {"x-signature": "not-a-real-signature", "x-secret": "MYSECRET"},
                payload,
                signature_key="x-signature",
                secret_key="x-secret",
            )

        assert exc_info.value.message == INVALID_SIGNATURE

    def test_tampered_body_rejected(self) -> None:
        """Changing a signed value invalidates the signature."""
        payload = RequestPayload(body={"name": "Tampered"})
        headers = {"x-signature": sign("name=Test", "MYSECRET"), "x-secret": "MYSECRET"}

        with pytest.raises(ForbiddenError):
            check_signature(headers, payload, signature_key="x-signature", secret_key="x-secret")


@pytest.mark.unit
class TestVerifySignature:
    """Per-request idempotence."""

    def test_marks_request_checked(self) -> None:
        """A verified request is flagged."""
        request = fake_request({"x-signature": sign("name=Test", "K"), "x-secret": "K"})

        verify_signature(request, RequestPayload(body={"name": "Test"}))

        assert request.state.signature_checked is True

    def test_second_call_is_skipped(self, mocker: MockerFixture) -> None:
        """Once checked, the signature is not verified again."""
        request = fake_request({})
        request.state.signature_checked = True
        spy = mocker.patch("neacore.security.signature.check_signature")

        verify_signature(request, RequestPayload())

        spy.assert_not_called()

    def test_failure_leaves_flag_unset(self) -> None:
        """A failed check does not mark the request."""
        request = fake_request({"x-secret": "K"})

        with pytest.raises(UnauthorizedError):
            verify_signature(request, RequestPayload())

        assert getattr(request.state, "signature_checked", False) is False
