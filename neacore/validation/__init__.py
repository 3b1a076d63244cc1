"""Declarative request validation and sanitization.

- **rules**: ``field()`` builder producing immutable ``FieldRule`` objects
- **validator**: ``run_validation`` interpreting a RuleSet against a request
- **sanitize**: Regex based string filter applied to opted-in fields
"""

from neacore.validation.rules import FieldRule, FieldType, RuleSet, field
from neacore.validation.validator import (
    RepeatedValues,
    RequestPayload,
    ValidationIssue,
    run_validation,
)

__all__ = [
    "FieldRule",
    "FieldType",
    "RepeatedValues",
    "RequestPayload",
    "RuleSet",
    "ValidationIssue",
    "field",
    "run_validation",
]
