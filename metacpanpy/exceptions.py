"""
Exceptions for the MetaCPAN client library
"""

from typing import Any, Optional


class MetaCPANError(Exception):
    """Base exception for all MetaCPAN client errors"""
    pass


class InvalidArgumentError(MetaCPANError):
    """A required argument was missing or malformed"""
    pass


class MalformedQueryError(MetaCPANError):
    """Search query does not follow the all/either/field structure"""
    pass


class ProtocolError(MetaCPANError):
    """Transport response does not have the expected shape"""
    pass


class RequestFailedError(MetaCPANError):
    """The remote service reported a failed request"""

    def __init__(self, url: str, reason: Optional[str] = None, status_code: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to fetch '{url}': {reason}")


class DecodeError(MetaCPANError):
    """Response content is not valid JSON"""

    def __init__(self, content: Any, error: Exception):
        self.content = content
        self.error = error
        if isinstance(content, bytes):
            content = content.decode(errors="replace")
        super().__init__(f"Couldn't decode '{content}': {error}")


class MetaCPANConnectionError(MetaCPANError):
    """Error connecting to the MetaCPAN server"""
    pass


class MetaCPANTimeoutError(MetaCPANError):
    """MetaCPAN server request timed out"""
    pass
