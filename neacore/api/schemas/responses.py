"""Response envelope schemas shared by every endpoint.

Successful responses and problem-detail errors both carry a ``trace`` block
that identifies the request for support and log lookups:

- **Trace**: method, client fingerprint, path, timestamp and response time
- **SuccessResponse**: ``status, message, data, trace``
- **ProblemResponse**: ``status, type, title, detail, instance, errors, trace``

The ``type`` of a problem links to the HTML page documenting the error kind.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Trace(BaseModel):
    """Request trace attached to every response."""

    model_config = ConfigDict(populate_by_name=True)

    method: str = Field(
        ...,
        description="HTTP method of the request",
        examples=["GET", "POST"],
    )

    hash: str = Field(
        default="unknown",
        description="Client fingerprint computed from request headers",
        examples=["9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08"],
    )

    path: str = Field(
        ...,
        description="Request path including the query string",
        examples=["/api/example/1?page=2"],
    )

    timestamp: str = Field(
        ...,
        description="ISO 8601 UTC time the response was built",
        examples=["2025-07-06T12:00:00.000000+00:00"],
    )

    response_time: str = Field(
        ...,
        alias="responseTime",
        description="Time spent handling the request",
        examples=["1.234ms"],
    )


class SuccessResponse(BaseModel):
    """Envelope of a successful response."""

    status: int = Field(default=200, description="HTTP status code", examples=[200])

    message: str = Field(
        default="OK",
        description="Human-readable outcome",
        examples=["Example1 endpoint works"],
    )

    data: Any = Field(
        default=None,
        description="Endpoint payload",
        examples=[{"name": "Test"}],
    )

    trace: Trace


class ProblemResponse(BaseModel):
    """Problem-detail error envelope."""

    status: int = Field(..., description="HTTP status code", examples=[422])

    type: str = Field(
        ...,
        description="URL of the page documenting this error kind",
        examples=["https://api.domain.com/errors/validation_error"],
    )

    title: str = Field(
        ...,
        description="Short summary of the error kind",
        examples=["Validation Failed"],
    )

    detail: str = Field(
        ...,
        description="Explanation of the error kind",
        examples=["Input validation failed."],
    )

    instance: str = Field(
        ...,
        description="Request path the error occurred on",
        examples=["/api/example/3"],
    )

    errors: Any = Field(
        default=None,
        description="Structured detail, e.g. field validation issues",
        examples=[[{"field": "email", "message": "Invalid Email"}]],
    )

    message: str | None = Field(
        default=None,
        description="Specific reason for gateway errors",
        examples=["Signature Missing"],
    )

    trace: Trace

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "status": 422,
                    "type": "https://api.domain.com/errors/validation_error",
                    "title": "Validation Failed",
                    "detail": "Input validation failed.",
                    "instance": "/api/example/3",
                    "errors": [{"field": "name", "message": "Field Is Required"}],
                    "message": "Validation Failed",
                    "trace": {
                        "method": "POST",
                        "hash": "unknown",
                        "path": "/api/example/3",
                        "timestamp": "2025-07-06T12:00:00.000000+00:00",
                        "responseTime": "0.812ms",
                    },
                },
                {
                    "status": 401,
                    "type": "https://api.domain.com/errors/unauthorized",
                    "title": "Unauthorized",
                    "detail": "Authentication is required or invalid.",
                    "instance": "/api/secure/1",
                    "message": "Signature Missing",
                    "trace": {
                        "method": "GET",
                        "hash": "unknown",
                        "path": "/api/secure/1",
                        "timestamp": "2025-07-06T12:00:01.000000+00:00",
                        "responseTime": "0.301ms",
                    },
                },
            ]
        }
    }
