"""String sanitization applied to fields that opt in with ``sanitize()``.

The filter runs a fixed sequence of regex passes:

1. trim surrounding whitespace
2. drop paired dangerous elements together with their content
3. drop self-closing / void forms of the same elements
4. escape ``& < > " '`` and ``/`` into entities
5. drop inline event handler attributes (``on...=``)
6. drop inline ``style=`` attributes
7. drop ``javascript:``, ``vbscript:`` and ``data:`` scheme prefixes
8. drop ``alert(...)``, ``eval(...)`` and ``expression(...)`` calls

Tag stripping must happen before escaping, otherwise the removed markup would
survive as escaped text. Attribute and scheme stripping runs afterwards to
catch what the escaping left behind.

Limitations:
    This is a defense-in-depth filter, not an HTML parser. Deeply malformed
    markup can get past it. It is also not idempotent: ``&`` is re-escaped on
    every pass, so ``&amp;`` becomes ``&amp;amp;``.
"""

import re
from typing import Any, Final

DANGEROUS_TAGS: Final[tuple[str, ...]] = (
    "script",
    "iframe",
    "img",
    "svg",
    "object",
    "embed",
    "link",
    "meta",
)

_PAIRED_TAG_PATTERNS: Final[tuple[re.Pattern[str], ...]] = tuple(
    re.compile(rf"<{tag}.*?>.*?</{tag}>", re.IGNORECASE | re.DOTALL)
    for tag in DANGEROUS_TAGS
)
_VOID_TAG_PATTERNS: Final[tuple[re.Pattern[str], ...]] = tuple(
    re.compile(rf"<{tag}[^>]*?/?>", re.IGNORECASE | re.DOTALL)
    for tag in DANGEROUS_TAGS
)

# Order matters: "&" first so the entities produced below are not re-escaped
HTML_ESCAPES: Final[tuple[tuple[str, str], ...]] = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#x27;"),
    ("/", "&#x2F;"),
)

_ATTRIBUTE_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"""\s*on\w+\s*=\s*(['"]).*?\1""", re.IGNORECASE),
    re.compile(r"\s*on\w+\s*=\s*[^ >]+", re.IGNORECASE),
    re.compile(r"""\s*style\s*=\s*(['"]).*?\1""", re.IGNORECASE),
    re.compile(r"\s*style\s*=\s*[^ >]+", re.IGNORECASE),
)

_SCHEME_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"javascript:|vbscript:|data:", re.IGNORECASE
)

_CALL_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"alert\(.+?\)", re.IGNORECASE),
    re.compile(r"eval\(.+?\)", re.IGNORECASE),
    re.compile(r"expression\(.+?\)", re.IGNORECASE),
)


def escape_html(value: str) -> str:
    """Escape HTML metacharacters and ``/`` into entities."""
    for char, entity in HTML_ESCAPES:
        value = value.replace(char, entity)
    return value


def sanitize_value(value: Any) -> Any:  # noqa: ANN401 - non-strings pass through untouched
    """Sanitize a string value; return any other value unchanged.

    Args:
        value: Raw field value from the request.

    Returns:
        Any: The cleaned string, or ``value`` itself if it is not a string.

    Examples:
        >>> sanitize_value("  <script>alert(1)</script>hello ")
        'hello'
        >>> sanitize_value("a/b")
        'a&#x2F;b'
        >>> sanitize_value(42)
        42
    """
    if not isinstance(value, str):
        return value

    clean = value.strip()

    for pattern in _PAIRED_TAG_PATTERNS:
        clean = pattern.sub("", clean)
    for pattern in _VOID_TAG_PATTERNS:
        clean = pattern.sub("", clean)

    clean = escape_html(clean)

    for pattern in _ATTRIBUTE_PATTERNS:
        clean = pattern.sub("", clean)

    clean = _SCHEME_PATTERN.sub("", clean)

    for pattern in _CALL_PATTERNS:
        clean = pattern.sub("", clean)

    return clean
