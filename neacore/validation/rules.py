"""Declarative per-field validation rules.

A rule is built fluently starting from :func:`field`::

    rules = [
        field("name").is_string().length(min=3, max=30).sanitize(),
        field("email").is_email().length(min=5, max=50).sanitize(),
        field("role").enum(["admin", "user"]).optional(),
    ]

``FieldRule`` is frozen. Every builder method returns a new rule, so a partially
built rule can be reused as a base for several fields without the variants
affecting each other.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass, field as dataclass_field, replace
from enum import Enum
from typing import Any, Self

from neacore.core.types import CustomRule


class FieldType(Enum):
    """Type check applied to a field value."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    EMAIL = "email"
    FILE = "file"
    ARRAY = "array"
    OBJECT = "object"


@dataclass(frozen=True, slots=True)
class Bounds:
    """Inclusive lower/upper bounds; ``None`` leaves a side unchecked."""

    min: float | None = None
    max: float | None = None


def _numeric_or_none(value: object) -> float | None:
    # bool is an int subclass but never a usable bound
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return value


@dataclass(frozen=True, slots=True)
class FieldRule:
    """Validation rules for one request field.

    Attributes:
        field_name: Key looked up in body, query, params and files.
        type: Type check to run, or None for no type check.
        is_optional: Whether a missing (falsy) value is accepted.
        length_rules: String length bounds.
        range_rules: Numeric value bounds.
        enum_values: Allowed values, compared strictly (``True`` is not ``1``).
        regex_pattern: Regex the string value must match (``search`` semantics).
        custom_rules: Extra predicates, each evaluated independently.
        enable_sanitize: Whether the value is sanitized and written back.
    """

    field_name: str
    type: FieldType | None = None
    is_optional: bool = False
    length_rules: Bounds | None = None
    range_rules: Bounds | None = None
    enum_values: tuple[Any, ...] | None = None
    regex_pattern: re.Pattern[str] | None = None
    custom_rules: tuple[CustomRule, ...] = dataclass_field(default_factory=tuple)
    enable_sanitize: bool = False

    def _with_type(self, field_type: FieldType) -> Self:
        return replace(self, type=field_type)

    def is_string(self) -> Self:
        """Require a string value."""
        return self._with_type(FieldType.STRING)

    def is_number(self) -> Self:
        """Require a value that converts to a number."""
        return self._with_type(FieldType.NUMBER)

    def is_boolean(self) -> Self:
        """Require a boolean or one of its string/int spellings."""
        return self._with_type(FieldType.BOOLEAN)

    def is_email(self) -> Self:
        """Require a ``local@domain.tld`` shaped string."""
        return self._with_type(FieldType.EMAIL)

    def is_file(self) -> Self:
        """Require an uploaded file."""
        return self._with_type(FieldType.FILE)

    def is_array(self) -> Self:
        """Require a list."""
        return self._with_type(FieldType.ARRAY)

    def is_object(self) -> Self:
        """Require a mapping."""
        return self._with_type(FieldType.OBJECT)

    def length(self, *, min: object = None, max: object = None) -> Self:  # noqa: A002
        """Bound the string length; non-numeric bounds are left unset."""
        return replace(
            self,
            length_rules=Bounds(_numeric_or_none(min), _numeric_or_none(max)),
        )

    def range(self, *, min: object = None, max: object = None) -> Self:  # noqa: A002
        """Bound the numeric value; non-numeric bounds are left unset."""
        return replace(
            self,
            range_rules=Bounds(_numeric_or_none(min), _numeric_or_none(max)),
        )

    def enum(self, allowed_values: object) -> Self:
        """Restrict the value to ``allowed_values``.

        Anything other than a list or tuple is ignored and the previous
        setting is kept.
        """
        if not isinstance(allowed_values, list | tuple):
            return self
        return replace(self, enum_values=tuple(allowed_values))

    def pattern(self, regex: object) -> Self:
        """Require the value to match a compiled regex; other types are ignored."""
        if not isinstance(regex, re.Pattern):
            return self
        return replace(self, regex_pattern=regex)

    def custom(self, rule: Callable[[Any], bool | str | None]) -> Self:
        """Append a custom predicate; non-callables are ignored."""
        if not callable(rule):
            return self
        return replace(self, custom_rules=(*self.custom_rules, rule))

    def optional(self) -> Self:
        """Accept a missing value."""
        return replace(self, is_optional=True)

    def sanitize(self) -> Self:
        """Sanitize the value and write it back into the request."""
        return replace(self, enable_sanitize=True)


type RuleSet = list[FieldRule]


def field(field_name: str) -> FieldRule:
    """Start a rule for ``field_name``."""
    return FieldRule(field_name=field_name)
