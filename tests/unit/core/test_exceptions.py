"""Unit tests for neacore.core.exceptions module."""

import pytest

from neacore.core.exceptions import (
    BadRequestError,
    CounterStoreError,
    ErrorKind,
    ForbiddenError,
    GatewayError,
    MalformedAddressError,
    PayloadTooLargeError,
    RateLimitExceededError,
    ServiceUnavailableError,
    Severity,
    UnauthorizedError,
    ValidationFailedError,
)


@pytest.mark.unit
class TestGatewayError:
    """Base exception behaviour."""

    def test_attributes(self) -> None:
        """Code, message, severity and context are stored."""
        error = GatewayError(ErrorKind.CONFLICT, "Already exists", context={"id": 1})

        assert error.error_code == "conflict"
        assert error.kind is ErrorKind.CONFLICT
        assert error.message == "Already exists"
        assert error.severity is Severity.MEDIUM
        assert error.context == {"id": 1}
        assert str(error) == "[conflict] Already exists"
        assert "context={'id': 1}" in repr(error)

    def test_custom_code_maps_to_unknown_kind(self) -> None:
        """Codes outside the vocabulary render as unknown_error."""
        assert GatewayError("custom_code", "x").kind is ErrorKind.UNKNOWN_ERROR

    def test_cause_is_chained(self) -> None:
        """The cause becomes __cause__."""
        cause = ValueError("inner")

        assert GatewayError("bad_request", "x", cause=cause).__cause__ is cause

    def test_fingerprint_is_stable_per_location(self) -> None:
        """Errors raised from the same place share a fingerprint."""
        fingerprints = {BadRequestError().fingerprint for _ in range(3)}

        assert len(fingerprints) == 1
        assert len(next(iter(fingerprints))) == 16

    def test_alerting(self) -> None:
        """HIGH and CRITICAL alert, LOW and MEDIUM are expected."""
        assert ForbiddenError().should_alert is True
        assert RateLimitExceededError().is_expected is True
        assert RateLimitExceededError().should_alert is False


@pytest.mark.unit
class TestSubclasses:
    """Specialised exceptions map to their kinds."""

    @pytest.mark.parametrize(
        ("error", "kind"),
        [
            (BadRequestError(), ErrorKind.BAD_REQUEST),
            (UnauthorizedError(), ErrorKind.UNAUTHORIZED),
            (ForbiddenError(), ErrorKind.FORBIDDEN),
            (RateLimitExceededError(), ErrorKind.RATE_LIMIT_EXCEEDED),
            (ServiceUnavailableError(), ErrorKind.SERVICE_UNAVAILABLE),
            (CounterStoreError(), ErrorKind.SERVICE_UNAVAILABLE),
            (PayloadTooLargeError(), ErrorKind.PAYLOAD_TOO_LARGE),
            (MalformedAddressError("Invalid IPv6 address"), ErrorKind.INTERNAL_ERROR),
            (ValidationFailedError([]), ErrorKind.VALIDATION_ERROR),
        ],
    )
    def test_kinds(self, error: GatewayError, kind: ErrorKind) -> None:
        """Each exception carries its kind."""
        assert error.kind is kind

    def test_validation_issues(self) -> None:
        """Issues are kept and counted in the context."""
        issues = [{"field": "name", "message": "Field Is Required"}]

        error = ValidationFailedError(issues)

        assert error.issues == issues
        assert error.context["issue_count"] == 1
        assert error.severity is Severity.LOW

    def test_counter_store_error_is_service_unavailable(self) -> None:
        """Store failures can be handled as service outages."""
        assert isinstance(CounterStoreError(), ServiceUnavailableError)
