"""Rule interpretation against a request payload.

``run_validation`` walks a RuleSet in order and returns every problem it finds
as a ``ValidationIssue``. It never raises for bad input or a bad RuleSet; the
caller decides how to surface a non-empty result (the API layer turns it into
one ``validation_error`` response).

Per field the checks run in this order:

1. duplicate detection (repeated body key, repeated query key)
2. value resolution, body > query > params > files
3. optional sanitization with write-back into the source container
4. required check (None, "", False, zero and NaN count as missing)
5. type check, then enum membership, then custom predicates

Steps 1-4 end the processing of a field on failure. Problems found in step 5
accumulate.
"""

import json
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field as dataclass_field
from functools import cached_property
from typing import Any, Final
from urllib.parse import parse_qsl

from neacore.core.types import Container
from neacore.validation.rules import FieldRule, FieldType
from neacore.validation.sanitize import sanitize_value

CONFIG_FIELD: Final[str] = "_config"

MSG_RULESET_INVALID: Final[str] = "RuleSet Invalid Or Missing"
MSG_INVALID_RULE: Final[str] = "Invalid Rule Detected"
MSG_DUPLICATE_BODY: Final[str] = "Duplicate Body Parameter"
MSG_DUPLICATE_QUERY: Final[str] = "Duplicate Query Parameter"
MSG_REQUIRED: Final[str] = "Field Is Required"
MSG_MUST_BE_STRING: Final[str] = "Must Be String"
MSG_TOO_SHORT: Final[str] = "Length Too Short"
MSG_TOO_LONG: Final[str] = "Length Too Long"
MSG_PATTERN: Final[str] = "Pattern Mismatch"
MSG_MUST_BE_NUMBER: Final[str] = "Must Be Number"
MSG_TOO_SMALL: Final[str] = "Number Too Small"
MSG_TOO_LARGE: Final[str] = "Number Too Large"
MSG_MUST_BE_BOOLEAN: Final[str] = "Must Be Boolean"
MSG_INVALID_EMAIL: Final[str] = "Invalid Email"
MSG_INVALID_FILE: Final[str] = "Invalid File"
MSG_MUST_BE_ARRAY: Final[str] = "Must Be Array"
MSG_MUST_BE_OBJECT: Final[str] = "Must Be Object"
MSG_INVALID_VALUE: Final[str] = "Invalid Value"
MSG_CUSTOM_FAILED: Final[str] = "Custom Rule Failed"

EMAIL_PATTERN: Final[re.Pattern[str]] = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_DECIMAL_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?"
)
_RADIX_PREFIXES: Final[dict[str, int]] = {"0x": 16, "0o": 8, "0b": 2}
_BOOLEAN_STRINGS: Final[frozenset[str]] = frozenset({"true", "false", "1", "0"})


class RepeatedValues(list[Any]):
    """Values of a key that occurred more than once in a body or query.

    Parsers produce this instead of keeping only the last occurrence, so the
    validator can tell a repeated key apart from a genuine array value.
    """


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """One problem found for one field (``_config`` for RuleSet problems)."""

    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        """Serialize for a response body."""
        return {"field": self.field, "message": self.message}


@dataclass
class RequestPayload:
    """Request containers inspected by the validator.

    The containers are owned by the caller; sanitization rewrites values in
    ``body``, ``query`` and ``params`` in place.
    """

    body: Container = dataclass_field(default_factory=dict)
    query: Container = dataclass_field(default_factory=dict)
    params: Container = dataclass_field(default_factory=dict)
    files: Mapping[str, Any] = dataclass_field(default_factory=dict)
    raw_body: bytes | str | None = None

    @cached_property
    def repeated_body_keys(self) -> frozenset[str]:
        """Top-level keys that appear more than once in ``raw_body``."""
        return find_repeated_keys(self.raw_body)


def find_repeated_keys(raw_body: bytes | str | None) -> frozenset[str]:
    """Find top-level keys repeated in a JSON object or urlencoded body.

    Args:
        raw_body: The undecoded request body, if the transport kept it.

    Returns:
        frozenset[str]: Keys seen more than once; empty if the body is
            absent or unparseable.
    """
    if not raw_body:
        return frozenset()

    text = raw_body.decode("utf-8", "replace") if isinstance(raw_body, bytes) else raw_body
    top_level: list[list[tuple[str, Any]]] = []

    def _collect(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
        top_level.append(pairs)
        return dict(pairs)

    try:
        decoded = json.loads(text, object_pairs_hook=_collect)
    except ValueError:
        pairs = parse_qsl(text, keep_blank_values=True)
    else:
        # The outermost object is the last one the hook sees
        pairs = top_level[-1] if isinstance(decoded, dict) and top_level else []

    seen: set[str] = set()
    repeated: set[str] = set()
    for key, _ in pairs:
        if key in seen:
            repeated.add(key)
        seen.add(key)
    return frozenset(repeated)


def _has_duplicate_body_key(payload: RequestPayload, field_name: str) -> bool:
    if isinstance(payload.body.get(field_name), RepeatedValues):
        return True
    return field_name in payload.repeated_body_keys


def _has_duplicate_query_key(
    payload: RequestPayload, rule: FieldRule
) -> bool:
    if rule.field_name in payload.body or rule.field_name not in payload.query:
        return False
    value = payload.query[rule.field_name]
    # Array fields legitimately repeat their key (?tag=a&tag=b)
    return isinstance(value, list) and rule.type is not FieldType.ARRAY


def resolve_field_value(payload: RequestPayload, field_name: str) -> Any:  # noqa: ANN401 - request values are untyped
    """Return the value of ``field_name`` by container precedence.

    A key present in a container wins even if its value is ``None``.
    """
    for container in (payload.body, payload.query, payload.params, payload.files):
        if field_name in container:
            return container[field_name]
    return None


def set_field_value(payload: RequestPayload, field_name: str, value: Any) -> None:  # noqa: ANN401 - request values are untyped
    """Write ``value`` back into the container ``field_name`` resolved from.

    Uploaded files are never rewritten.
    """
    for container in (payload.body, payload.query, payload.params):
        if field_name in container:
            container[field_name] = value
            return


def to_number(value: Any) -> float:  # noqa: ANN401 - request values are untyped
    """Coerce a request value to a number, returning NaN when impossible.

    Accepts numbers, booleans, decimal strings (surrounding whitespace
    ignored, empty means 0), ``0x``/``0o``/``0b`` integer strings,
    ``Infinity`` spellings, and single-element lists of any of these.
    """
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, list):
        if not value:
            return 0.0
        return to_number(str(value[0])) if len(value) == 1 else math.nan
    if not isinstance(value, str):
        return math.nan

    text = value.strip()
    if not text:
        return 0.0
    if text in {"Infinity", "+Infinity"}:
        return math.inf
    if text == "-Infinity":
        return -math.inf
    radix = _RADIX_PREFIXES.get(text[:2].lower())
    if radix is not None:
        try:
            return float(int(text[2:], radix))
        except ValueError:
            return math.nan
    if _DECIMAL_PATTERN.fullmatch(text):
        return float(text)
    return math.nan


def _is_boolean_like(value: Any) -> bool:  # noqa: ANN401 - request values are untyped
    if isinstance(value, bool):
        return True
    if isinstance(value, int | float):
        return value in (0, 1)
    return isinstance(value, str) and value in _BOOLEAN_STRINGS


def _is_file_like(value: Any) -> bool:  # noqa: ANN401 - request values are untyped
    if isinstance(value, str | bytes) or value is None:
        return False
    if isinstance(value, Mapping):
        return bool(value.get("originalname") or value.get("filename"))
    return bool(
        getattr(value, "originalname", None) or getattr(value, "filename", None)
    )


def _check_type(rule: FieldRule, value: Any) -> tuple[list[str], bool]:  # noqa: ANN401 - request values are untyped
    """Run the type check of ``rule``.

    Returns:
        tuple[list[str], bool]: Messages found and whether the remaining
            checks of the field must be skipped.
    """
    messages: list[str] = []

    match rule.type:
        case FieldType.STRING:
            if not isinstance(value, str):
                return [MSG_MUST_BE_STRING], True
            bounds = rule.length_rules
            if bounds is not None:
                if bounds.min is not None and len(value) < bounds.min:
                    messages.append(MSG_TOO_SHORT)
                if bounds.max is not None and len(value) > bounds.max:
                    messages.append(MSG_TOO_LONG)
            if rule.regex_pattern is not None and not rule.regex_pattern.search(value):
                messages.append(MSG_PATTERN)
        case FieldType.NUMBER:
            number = to_number(value)
            if math.isnan(number):
                return [MSG_MUST_BE_NUMBER], True
            bounds = rule.range_rules
            if bounds is not None:
                if bounds.min is not None and number < bounds.min:
                    messages.append(MSG_TOO_SMALL)
                if bounds.max is not None and number > bounds.max:
                    messages.append(MSG_TOO_LARGE)
        case FieldType.BOOLEAN:
            if not _is_boolean_like(value):
                return [MSG_MUST_BE_BOOLEAN], True
        case FieldType.EMAIL:
            if not (isinstance(value, str) and EMAIL_PATTERN.fullmatch(value)):
                messages.append(MSG_INVALID_EMAIL)
        case FieldType.FILE:
            if not _is_file_like(value):
                messages.append(MSG_INVALID_FILE)
        case FieldType.ARRAY:
            if not isinstance(value, list):
                messages.append(MSG_MUST_BE_ARRAY)
        case FieldType.OBJECT:
            if not isinstance(value, Mapping):
                messages.append(MSG_MUST_BE_OBJECT)
        case None:
            pass

    return messages, False


def _is_missing(value: Any) -> bool:  # noqa: ANN401 - request values are untyped
    """Whether a required field counts as absent.

    None, "", False, zero and NaN are absent; empty lists and objects are
    present values.
    """
    if value is None or value is False or value == "":
        return True
    if isinstance(value, int | float) and not isinstance(value, bool):
        return value == 0 or math.isnan(value)
    return False


def _value_kind(value: Any) -> type:  # noqa: ANN401 - request values are untyped
    if isinstance(value, int | float) and not isinstance(value, bool):
        return float
    return type(value)


def _enum_contains(allowed: Any, value: Any) -> bool:  # noqa: ANN401 - request values are untyped
    """Strict membership: True does not match 1, nor "1" match 1."""
    kind = _value_kind(value)
    return any(_value_kind(option) is kind and option == value for option in allowed)


def _run_custom_rules(rule: FieldRule, value: Any) -> list[str]:  # noqa: ANN401 - request values are untyped
    messages = []
    for predicate in rule.custom_rules:
        result = predicate(value)
        if result is True:
            continue
        messages.append(result if isinstance(result, str) and result else MSG_CUSTOM_FAILED)
    return messages


def _validate_field(payload: RequestPayload, rule: FieldRule) -> list[str]:
    if _has_duplicate_body_key(payload, rule.field_name):
        return [MSG_DUPLICATE_BODY]
    if _has_duplicate_query_key(payload, rule):
        return [MSG_DUPLICATE_QUERY]

    value = resolve_field_value(payload, rule.field_name)

    if rule.enable_sanitize:
        value = sanitize_value(value)
        set_field_value(payload, rule.field_name, value)

    # 0 and False fail a required field; [] and {} do not
    if _is_missing(value):
        return [] if rule.is_optional else [MSG_REQUIRED]

    messages, stop = _check_type(rule, value)
    if stop:
        return messages

    if rule.enum_values is not None and not _enum_contains(rule.enum_values, value):
        messages.append(MSG_INVALID_VALUE)

    messages.extend(_run_custom_rules(rule, value))
    return messages


def run_validation(payload: RequestPayload, rule_set: object) -> list[ValidationIssue]:
    """Validate ``payload`` against ``rule_set``.

    Args:
        payload: The request containers; sanitized values are written back.
        rule_set: A non-empty list of FieldRule.

    Returns:
        list[ValidationIssue]: Every issue found, in RuleSet order. Empty
            means the payload is valid.
    """
    if not isinstance(rule_set, list) or not rule_set:
        return [ValidationIssue(CONFIG_FIELD, MSG_RULESET_INVALID)]

    issues: list[ValidationIssue] = []
    for rule in rule_set:
        if not isinstance(rule, FieldRule) or not rule.field_name:
            issues.append(ValidationIssue(CONFIG_FIELD, MSG_INVALID_RULE))
            continue
        issues.extend(
            ValidationIssue(rule.field_name, message)
            for message in _validate_field(payload, rule)
        )
    return issues
