"""
HTTP user agents used by the MetaCPAN clients

Any object with matching get/post methods can be injected instead; the
clients only rely on the HTTPClient / AsyncHTTPClient protocols below.
"""

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional, Protocol, Union

import aiohttp
import requests
from aiohttp import ClientTimeout

from .exceptions import MetaCPANConnectionError, MetaCPANTimeoutError
from .models import TransportResponse, default_agent

logger = logging.getLogger("metacpanpy")

ResponseLike = Union[TransportResponse, Mapping[str, Any]]


class HTTPClient(Protocol):
    def get(self, url: str) -> ResponseLike: ...

    def post(self, url: str, options: Mapping[str, Any]) -> ResponseLike: ...


class AsyncHTTPClient(Protocol):
    async def get(self, url: str) -> ResponseLike: ...

    async def post(self, url: str, options: Mapping[str, Any]) -> ResponseLike: ...


def _build_headers(agent: Optional[str], headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    merged = {"User-Agent": agent or default_agent(), "Accept": "application/json"}
    if headers:
        merged.update(headers)
    return merged


class RequestsUserAgent:
    """
    Blocking user agent backed by a requests session
    """

    def __init__(
        self,
        agent: Optional[str] = None,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize a new user agent

        Args:
            agent: User-Agent header value
            timeout: Request timeout in seconds (None waits forever)
            headers: Extra headers sent with every request
        """
        self.agent = agent or default_agent()
        self.timeout = timeout
        self.headers = _build_headers(self.agent, headers)
        self._session = None

    def _get_session(self) -> requests.Session:
        """Get or create a requests session"""
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update(self.headers)
        return self._session

    def close(self) -> None:
        """Close the underlying session"""
        if self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def get(self, url: str) -> TransportResponse:
        return self._request("GET", url)

    def post(self, url: str, options: Mapping[str, Any]) -> TransportResponse:
        return self._request(
            "POST",
            url,
            data=options.get("content"),
            headers={"Content-Type": "application/json"},
        )

    def _request(self, method: str, url: str, **kwargs) -> TransportResponse:
        logger.debug(f"{method} {url}")
        try:
            response = self._get_session().request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout:
            raise MetaCPANTimeoutError(f"Request timed out after {self.timeout} seconds")
        except requests.exceptions.ConnectionError as e:
            raise MetaCPANConnectionError(f"Failed to connect to MetaCPAN server: {e}")

        return TransportResponse(
            success=response.ok,
            status=response.status_code,
            reason=response.reason,
            content=response.content,
            url=url,
        )


class AiohttpUserAgent:
    """
    Asynchronous user agent backed by an aiohttp client session
    """

    def __init__(
        self,
        agent: Optional[str] = None,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.agent = agent or default_agent()
        self.timeout = timeout
        self.timeout_obj = ClientTimeout(total=timeout)
        self.headers = _build_headers(self.agent, headers)
        self._session = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create an aiohttp client session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers=self.headers)
        return self._session

    async def close(self) -> None:
        """Close the client session"""
        if self._session is not None and not self._session.closed:
            await self._session.close()
            self._session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def get(self, url: str) -> TransportResponse:
        logger.debug(f"Async GET {url}")
        session = await self._get_session()
        try:
            async with session.get(url, timeout=self.timeout_obj) as response:
                return await self._to_transport_response(response, url)
        except asyncio.TimeoutError:
            raise MetaCPANTimeoutError(f"Request timed out after {self.timeout} seconds")
        except aiohttp.ClientConnectionError as e:
            raise MetaCPANConnectionError(f"Failed to connect to MetaCPAN server: {e}")

    async def post(self, url: str, options: Mapping[str, Any]) -> TransportResponse:
        logger.debug(f"Async POST {url}")
        session = await self._get_session()
        try:
            async with session.post(
                url,
                data=options.get("content"),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout_obj,
            ) as response:
                return await self._to_transport_response(response, url)
        except asyncio.TimeoutError:
            raise MetaCPANTimeoutError(f"Request timed out after {self.timeout} seconds")
        except aiohttp.ClientConnectionError as e:
            raise MetaCPANConnectionError(f"Failed to connect to MetaCPAN server: {e}")

    @staticmethod
    async def _to_transport_response(response, url: str) -> TransportResponse:
        content = await response.read()
        return TransportResponse(
            success=200 <= response.status < 300,
            status=response.status,
            reason=response.reason,
            content=content,
            url=url,
        )
