from types import MappingProxyType
from typing import Mapping, NamedTuple, Optional, Tuple

_NO_HEADERS: Mapping[str, str] = MappingProxyType({})


class Link(NamedTuple):
    """A hyperlink found on a page."""
    url: str
    text: str = ""


class FetchRequest(NamedTuple):
    """Request handed to a Fetcher for a single URL."""
    url: str
    headers: Optional[Mapping[str, str]] = None
    timeout: Optional[float] = None


class HttpResponse(NamedTuple):
    """Response from a fetch operation (or synthesized from a cache hit)."""
    url: str
    status_code: int
    text: str
    content_type: Optional[str] = None
    links: Tuple[Link, ...] = ()
    headers: Mapping[str, str] = _NO_HEADERS
