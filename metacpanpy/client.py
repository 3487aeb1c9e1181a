"""
Synchronous and asynchronous clients for the MetaCPAN API
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional

from .backend import ElasticsearchBackend, SearchBackend
from .exceptions import InvalidArgumentError
from .models import ClientConfig
from .query import build_search_body
from .scroll import ScrollSession
from .transport import AiohttpUserAgent, AsyncHTTPClient, HTTPClient, RequestsUserAgent
from .utils import decode_result, join_url

logger = logging.getLogger("metacpanpy")


def _encode_params(params: Optional[Mapping[str, Any]]) -> Optional[bytes]:
    if params is None:
        return None
    if not isinstance(params, Mapping):
        raise InvalidArgumentError("fetch parameters must be a mapping")
    if not params:
        return None
    return json.dumps(params).encode()


class MetaCPANClient:
    """
    Synchronous client for the MetaCPAN API
    """

    def __init__(
        self,
        domain: Optional[str] = None,
        version: Optional[str] = None,
        base_url: Optional[str] = None,
        ua: Optional[HTTPClient] = None,
        ua_args: Optional[Dict[str, Any]] = None,
        es: Optional[SearchBackend] = None,
    ):
        """
        Initialize a new MetaCPAN client

        Args:
            domain: Host for HTTP and search requests (default api.metacpan.org)
            version: API version, also used as the search index (default v0)
            base_url: Overrides the derived http://{domain}/{version}
            ua: HTTP user agent with get(url) and post(url, options)
            ua_args: Keyword arguments for the default RequestsUserAgent
            es: Search backend used by open_scroll
        """
        settings: Dict[str, Any] = {"base_url": base_url}
        if domain is not None:
            settings["domain"] = domain
        if version is not None:
            settings["version"] = version
        if ua_args is not None:
            settings["ua_args"] = ua_args
        self.config = ClientConfig(**settings)
        self._ua = ua
        self._owns_ua = ua is None
        self._es = es
        self._owns_es = es is None

    @property
    def domain(self) -> str:
        return self.config.domain

    @property
    def version(self) -> str:
        return self.config.version

    @property
    def base_url(self) -> str:
        return self.config.base_url

    @property
    def ua(self) -> HTTPClient:
        """The HTTP user agent, built from ua_args on first use"""
        if self._ua is None:
            self._ua = RequestsUserAgent(**self.config.ua_args)
        return self._ua

    @property
    def es(self) -> SearchBackend:
        """The search backend, bound to the configured domain on first use"""
        if self._es is None:
            self._es = ElasticsearchBackend(self.config.search_nodes)
        return self._es

    def close(self) -> None:
        """Close the default user agent and search backend, if they were created"""
        if self._owns_ua and self._ua is not None:
            self._ua.close()
            self._ua = None
        if self._owns_es and self._es is not None:
            self._es.close()
            self._es = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def fetch(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Fetch a path from the MetaCPAN API

        Args:
            path: Path below the base URL, e.g. "/release/Moose"
            params: Optional parameters; when given they are POSTed as JSON

        Returns:
            The decoded JSON document

        Raises:
            InvalidArgumentError: Path is empty or params is not a mapping
            ProtocolError: The user agent returned a malformed response
            RequestFailedError: Server reported a failed request
            DecodeError: Response content is not valid JSON
        """
        req_url = join_url(self.base_url, path)
        content = _encode_params(params)

        if content is not None:
            logger.debug(f"Fetch (POST): {req_url}")
            result = self.ua.post(req_url, {"content": content})
        else:
            logger.debug(f"Fetch (GET): {req_url}")
            result = self.ua.get(req_url)

        return decode_result(result, req_url)

    def open_scroll(
        self,
        document_type: str,
        query: Mapping[str, Any],
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> ScrollSession:
        """
        Open a scrolling search over one document type

        Args:
            document_type: Document type to search, e.g. "release"
            query: Search DSL, e.g. {"all": [{"author": "ETHER"}, {"name": "Moo*"}]}
            overrides: Replace session defaults (index, type, size, scroll,
                search_type, body); other keys become extra search parameters

        Returns:
            A ScrollSession; no hits are requested until it is iterated

        Raises:
            InvalidArgumentError: Document type is empty
            MalformedQueryError: Query does not follow the DSL structure
        """
        if not document_type:
            raise InvalidArgumentError("open_scroll must be called with a document type")

        settings: Dict[str, Any] = {
            "index": self.version,
            "doc_type": document_type,
            "size": self.config.scroll_size,
            "scroll": self.config.scroll_lifetime,
            "search_type": None,
            "body": build_search_body(query),
        }
        params: Dict[str, Any] = {}
        for key, value in (overrides or {}).items():
            if key == "type":
                key = "doc_type"
            if key in settings:
                settings[key] = value
            else:
                params[key] = value

        logger.debug(f"Scroll search on {settings['index']}/{settings['doc_type']}: {settings['body']}")
        return ScrollSession(self.es, params=params, **settings)

    ssearch = open_scroll


class AsyncMetaCPANClient:
    """
    Asynchronous client for the MetaCPAN API
    """

    def __init__(
        self,
        domain: Optional[str] = None,
        version: Optional[str] = None,
        base_url: Optional[str] = None,
        ua: Optional[AsyncHTTPClient] = None,
        ua_args: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize a new async MetaCPAN client

        Args:
            domain: Host for HTTP requests (default api.metacpan.org)
            version: API version (default v0)
            base_url: Overrides the derived http://{domain}/{version}
            ua: Async HTTP user agent with get(url) and post(url, options)
            ua_args: Keyword arguments for the default AiohttpUserAgent
        """
        settings: Dict[str, Any] = {"base_url": base_url}
        if domain is not None:
            settings["domain"] = domain
        if version is not None:
            settings["version"] = version
        if ua_args is not None:
            settings["ua_args"] = ua_args
        self.config = ClientConfig(**settings)
        self._ua = ua
        self._owns_ua = ua is None

    @property
    def base_url(self) -> str:
        return self.config.base_url

    @property
    def ua(self) -> AsyncHTTPClient:
        if self._ua is None:
            self._ua = AiohttpUserAgent(**self.config.ua_args)
        return self._ua

    async def close(self) -> None:
        """Close the default user agent, if one was created"""
        if self._owns_ua and self._ua is not None:
            await self._ua.close()
            self._ua = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def fetch(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Fetch a path from the MetaCPAN API asynchronously

        Same contract as MetaCPANClient.fetch.
        """
        req_url = join_url(self.base_url, path)
        content = _encode_params(params)

        if content is not None:
            logger.debug(f"Async fetch (POST): {req_url}")
            result = await self.ua.post(req_url, {"content": content})
        else:
            logger.debug(f"Async fetch (GET): {req_url}")
            result = await self.ua.get(req_url)

        return decode_result(result, req_url)
