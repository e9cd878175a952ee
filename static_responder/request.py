"""
Request line parsing.

Only the first line of a request is ever looked at:

    <METHOD> <TARGET> <PROTOCOL-VERSION>

where TARGET is a path optionally followed by ``?`` and a query string.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Union
from urllib.parse import parse_qsl


@dataclass(frozen=True)
class Request:
    """A parsed request line."""
    method: str
    path: str
    query_params: Mapping[str, str] = field(default_factory=dict)
    protocol_version: str = "HTTP/1.1"

    def __post_init__(self):
        # Freeze the mapping as well as the attributes.
        object.__setattr__(self, 'query_params', MappingProxyType(dict(self.query_params)))

    def get_query_param(self, name: str):
        return self.query_params.get(name)


@dataclass(frozen=True)
class MalformedRequestLine:
    """Returned instead of a Request when the line does not tokenize."""
    line: str
    reason: str


def parse_query_string(query: str) -> dict:
    """
    Decode a query string into a dict.

    Pairs are applied left to right, so the last occurrence of a key wins.

    Args:
        query: Raw query string without the leading ``?``

    Returns:
        Mapping of decoded keys to decoded values
    """
    params = {}
    for key, value in parse_qsl(query, keep_blank_values=True, encoding='utf-8'):
        params[key] = value
    return params


def parse_request_line(line: str) -> Union[Request, MalformedRequestLine]:
    """
    Parse a raw request line.

    Args:
        line: Request line with the trailing CRLF already removed

    Returns:
        Request on success, MalformedRequestLine otherwise
    """
    parts = line.split(' ')
    if len(parts) != 3:
        return MalformedRequestLine(line, f"expected 3 tokens, got {len(parts)}")

    method, target, version = parts
    path, separator, query = target.partition('?')

    query_params = parse_query_string(query) if separator else {}

    return Request(
        method=method,
        path=path,
        query_params=query_params,
        protocol_version=version
    )
