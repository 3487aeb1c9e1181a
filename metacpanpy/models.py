"""
Data models for MetaCPAN transport responses and client configuration
"""

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from . import __version__
from .utils import build_base_url, build_search_node

DEFAULT_DOMAIN = "api.metacpan.org"
DEFAULT_VERSION = "v0"
DEFAULT_SCROLL_SIZE = 1000
DEFAULT_SCROLL_LIFETIME = "5m"


def default_agent() -> str:
    return f"metacpanpy/{__version__}"


class TransportResponse(BaseModel):
    """Result of one HTTP exchange, shaped like an HTTP::Tiny response"""

    success: bool
    status: Optional[int] = None
    reason: Optional[str] = None
    content: Optional[Union[bytes, str]] = None
    url: Optional[str] = None


class ClientConfig(BaseModel):
    """Construction-time settings of a MetaCPAN client, read-only once built"""

    model_config = ConfigDict(frozen=True)

    domain: str = DEFAULT_DOMAIN
    version: str = DEFAULT_VERSION
    base_url: Optional[str] = None
    ua_args: Dict[str, Any] = Field(default_factory=lambda: {"agent": default_agent()})
    scroll_size: int = DEFAULT_SCROLL_SIZE
    scroll_lifetime: str = DEFAULT_SCROLL_LIFETIME

    @model_validator(mode="before")
    @classmethod
    def _derive_base_url(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("base_url"):
            data = dict(data)
            data["base_url"] = build_base_url(
                data.get("domain", DEFAULT_DOMAIN), data.get("version", DEFAULT_VERSION)
            )
        return data

    @property
    def search_nodes(self) -> str:
        return build_search_node(self.domain)
