"""Type aliases for loosely typed request data.

Request containers (body, query, params, files) are maps whose values come
straight from JSON, form or query parsing. The aliases below give those shapes
a name so validator code can state what it accepts.
"""

from collections.abc import Callable, MutableMapping
from typing import Any

# One request container (body, query, params or files)
type Container = MutableMapping[str, Any]

# A custom validation predicate: True on success, a message (or falsy) on failure
type CustomRule = Callable[[Any], bool | str | None]
