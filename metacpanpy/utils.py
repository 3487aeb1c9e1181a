"""
Utility functions for the MetaCPAN client library
"""

import json
from typing import Any, Dict, Iterable, Mapping
from urllib.parse import urlsplit

from pydantic import BaseModel

from .exceptions import DecodeError, InvalidArgumentError, ProtocolError, RequestFailedError

DEFAULT_HTTP_PORT = 80


def build_base_url(domain: str, version: str) -> str:
    """
    Derive the API base URL from a domain and version

    Example:
    ("api.metacpan.org", "v0") -> "http://api.metacpan.org/v0"
    """
    return f"http://{domain}/{version}"


def build_search_node(domain: str) -> str:
    """
    Derive the search node URL from a domain, adding port 80 when none is given

    Example:
    "api.metacpan.org" -> "http://api.metacpan.org:80"
    "localhost:5000"   -> "http://localhost:5000"
    """
    node = f"http://{domain}"
    if urlsplit(node).port is None:
        node = f"{node}:{DEFAULT_HTTP_PORT}"
    return node


def join_url(base_url: str, path: str) -> str:
    """
    Join a base URL and a request path with exactly one slash between them

    Example:
    ("http://api.metacpan.org/v0", "/release/Moose") ->
        "http://api.metacpan.org/v0/release/Moose"
    """
    if not path:
        raise InvalidArgumentError("fetch must be called with a URL path")
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def decode_result(response: Any, url: str) -> Any:
    """
    Validate a transport response and decode its JSON content

    Checks run in order and the first failure wins: the response must be a
    mapping, carry a success flag, report success, carry content, and that
    content must be valid JSON.

    Raises:
        InvalidArgumentError: No request URL was given
        ProtocolError: Response is missing the success flag or content
        RequestFailedError: Response reports failure
        DecodeError: Content is not valid JSON
    """
    if not url:
        raise InvalidArgumentError("decode_result must be called with the request URL")

    if isinstance(response, BaseModel):
        response = response.model_dump(exclude_none=True)

    if not isinstance(response, Mapping):
        raise ProtocolError("response must be a structured record")

    success = response.get("success")
    if success is None:
        raise ProtocolError("missing success indicator")

    if not success:
        raise RequestFailedError(url, response.get("reason"), response.get("status"))

    content = response.get("content")
    if not content:
        raise ProtocolError("missing content")

    try:
        return json.loads(content)
    except (ValueError, TypeError) as e:
        raise DecodeError(content, e) from e


def parse_params(pairs: Iterable[str]) -> Dict[str, str]:
    """
    Parse "key=value" strings into a parameter mapping

    Example:
    ["fields=name", "size=10"] -> {"fields": "name", "size": "10"}
    """
    params: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise InvalidArgumentError(f"expected key=value, got '{pair}'")
        params[key] = value
    return params
