"""
MetaCPANPy: Python client library for the MetaCPAN API
"""

__version__ = "0.1.0"

from .client import MetaCPANClient, AsyncMetaCPANClient
from .models import ClientConfig, TransportResponse
from .scroll import ScrollSession
from .backend import ElasticsearchBackend, SearchBackend
from .transport import (
    AiohttpUserAgent,
    AsyncHTTPClient,
    HTTPClient,
    RequestsUserAgent,
)
from .exceptions import (
    MetaCPANError,
    InvalidArgumentError,
    MalformedQueryError,
    ProtocolError,
    RequestFailedError,
    DecodeError,
    MetaCPANConnectionError,
    MetaCPANTimeoutError,
)
from .query import build_search_body, compile_query, query_fields
from .utils import decode_result, join_url

__all__ = [
    "MetaCPANClient",
    "AsyncMetaCPANClient",
    "ClientConfig",
    "TransportResponse",
    "ScrollSession",
    "ElasticsearchBackend",
    "SearchBackend",
    "AiohttpUserAgent",
    "AsyncHTTPClient",
    "HTTPClient",
    "RequestsUserAgent",
    "MetaCPANError",
    "InvalidArgumentError",
    "MalformedQueryError",
    "ProtocolError",
    "RequestFailedError",
    "DecodeError",
    "MetaCPANConnectionError",
    "MetaCPANTimeoutError",
    "build_search_body",
    "compile_query",
    "query_fields",
    "decode_result",
    "join_url",
]
