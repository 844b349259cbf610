from __future__ import annotations

from typing import Any, Optional, Protocol

from sitecrawl.domain.http_response import HttpResponse
from sitecrawl.services.html_extractor import HtmlExtractor, PageMetadata


class Parser(Protocol):
    """Turn a fetched page into structured data.

    The crawler treats the returned value as opaque. Raising marks the page
    as a parse failure; the crawl carries on with link discovery.
    Implementations must be safe for concurrent use by crawler workers.
    """

    def parse(self, response: HttpResponse) -> Any: ...


class PageMetadataParser:
    """Parser returning the page title, description and canonical URL."""

    def __init__(self, extractor: Optional[HtmlExtractor] = None):
        self._extractor = extractor or HtmlExtractor()

    def parse(self, response: HttpResponse) -> PageMetadata:
        return self._extractor.extract_metadata(response.text)
