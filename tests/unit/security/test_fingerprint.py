"""Unit tests for neacore.security.fingerprint module."""

import hashlib

import pytest

from neacore.security.fingerprint import generate_fingerprint


@pytest.mark.unit
class TestGenerateFingerprint:
    """Header fingerprinting."""

    def test_hashes_joined_headers(self) -> None:
        """The fingerprint is the SHA-256 of the headers joined by |."""
        headers = {
            "user-agent": "Mozilla/5.0",
            "accept": "application/json",
            "accept-language": "en-US",
            "sec-ch-ua": '"Chromium";v="124"',
        }
        raw = 'Mozilla/5.0|application/json|en-US|"Chromium";v="124"'

        assert generate_fingerprint(headers) == hashlib.sha256(raw.encode()).hexdigest()

    def test_missing_headers_are_empty(self) -> None:
        """Absent headers contribute empty strings."""
        assert generate_fingerprint({}) == hashlib.sha256(b"|||").hexdigest()

    def test_stable_and_distinct(self) -> None:
        """Same headers, same hash; different headers, different hash."""
        first = generate_fingerprint({"user-agent": "a"})

        assert generate_fingerprint({"user-agent": "a"}) == first
        assert generate_fingerprint({"user-agent": "b"}) != first

    def test_ignores_other_headers(self) -> None:
        """Headers outside the fingerprint set do not change it."""
        assert generate_fingerprint({"user-agent": "a", "x-other": "1"}) == generate_fingerprint(
            {"user-agent": "a"}
        )
