"""Placeholder substitution for the templated resource."""

import datetime
from typing import Callable, Mapping

PLACEHOLDER = b"{time}"


def format_query_params(query_params: Mapping[str, str]) -> str:
    """Render query params as ``{k1=v1, k2=v2}``."""
    pairs = ", ".join(f"{key}={value}" for key, value in query_params.items())
    return "{" + pairs + "}"


def render_template(template: bytes, query_params: Mapping[str, str],
                    now: Callable[[], datetime.datetime] = datetime.datetime.now) -> bytes:
    """
    Replace every ``{time}`` token in the template.

    The replacement is ``<timestamp> | Query: <params>``. The clock is read
    once, so all occurrences in one rendering carry the same timestamp.

    Args:
        template: Raw template bytes
        query_params: Parsed query parameters of the current request
        now: Clock returning the current local time

    Returns:
        Rendered bytes
    """
    rendered = f"{now().isoformat()} | Query: {format_query_params(query_params)}"
    return template.replace(PLACEHOLDER, rendered.encode('utf-8'))
