"""HTML documentation page for an error kind."""

import html
from typing import Final

import orjson

from neacore.api.errors.catalog import ERROR_CATALOG, build_problem, resolve_kind

PAGE_TEMPLATE: Final[str] = """<!DOCTYPE html>
<html lang="en">
  <head>
    <title>{title} - {status}</title>
    <meta charset="utf-8"/>
    <meta name="viewport" content="width=device-width,initial-scale=1"/>
    <style>
      body {{ font-family: sans-serif; max-width: 500px; margin: 40px auto; }}
      pre {{ background: #f6f8fa; padding: 12px; border-radius: 4px; }}
    </style>
  </head>
  <body>
    <h1>{title} <span style="font-size:16px;color:#888">({status})</span></h1>
    <p><b>Description:</b> {detail}</p>
    <p><b>Solution:</b> {solution}</p>
    <h3>Example Response:</h3>
    <pre>{example}</pre>
  </body>
</html>
"""


def render_error_page(error_key: str, instance: str) -> str:
    """Render the documentation page for ``error_key``.

    Unknown keys render the unknown_error page. Every interpolated value is
    HTML-escaped, ``instance`` included, since it echoes the request path.

    Args:
        error_key: Error kind identifier taken from the URL.
        instance: Request path shown in the example response.

    Returns:
        str: A complete HTML document.
    """
    kind = resolve_kind(error_key)
    definition = ERROR_CATALOG[kind]
    example = orjson.dumps(
        build_problem(kind, instance), option=orjson.OPT_INDENT_2
    ).decode()

    return PAGE_TEMPLATE.format(
        title=html.escape(definition.title),
        status=html.escape(str(definition.status)),
        detail=html.escape(definition.detail),
        solution=html.escape(definition.solution),
        example=html.escape(example),
    )
