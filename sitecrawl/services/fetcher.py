from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List, Optional, Protocol, Union

from sitecrawl.domain.http_response import FetchRequest, HttpResponse, Link
from sitecrawl.exceptions import HttpFetchError
from sitecrawl.services.html_extractor import HtmlExtractor

logger = logging.getLogger(__name__)

DEFAULT_MAX_BODY_SIZE = 10 * 1024 * 1024


class Fetcher(Protocol):
    """Fetch a URL and return a normalized HTTP-like response.

    Responses carry the page's outbound links so the crawler can keep
    going. Implementations are shared between workers and must be safe for
    concurrent calls. `stop_event` is the crawl's cancellation signal.
    """

    def fetch(self, request: FetchRequest, stop_event=None) -> HttpResponse: ...


def _is_stopped(stop_event) -> bool:
    return stop_event is not None and getattr(stop_event, "is_set", lambda: False)()


class HttpFetcher:
    """Fetch pages over HTTP and attach the links found in their markup."""

    def __init__(
        self,
        http_service,
        extractor: Optional[HtmlExtractor] = None,
        *,
        max_body_size: int = DEFAULT_MAX_BODY_SIZE,
    ):
        self._http_service = http_service
        self._extractor = extractor or HtmlExtractor()
        self._max_body_size = max_body_size

    def fetch(self, request: FetchRequest, stop_event=None) -> HttpResponse:
        if _is_stopped(stop_event):
            raise RuntimeError("Fetch cancelled")

        response = self._http_service.fetch(request.url, headers=request.headers, timeout=request.timeout)

        ct = response.content_type
        if ct and "html" not in ct.lower():
            raise HttpFetchError(request.url, ValueError(f"unexpected content type: {ct}"))
        if self._max_body_size and len(response.text or "") > self._max_body_size:
            raise HttpFetchError(request.url, ValueError(f"response size exceeds limit of {self._max_body_size} bytes"))

        try:
            sc = int(response.status_code)
            if sc < 200 or sc >= 300:
                logger.warning("Non-success status for %s: %s", request.url, response.status_code)
        except (TypeError, ValueError):
            logger.exception("Error parsing status code for %s: %s", request.url, response.status_code)

        links = self._extractor.extract_links(response.url, response.text)
        return response._replace(links=tuple(links))


class InMemoryFetcher:
    """Fetcher serving canned responses; handy for tests and offline runs.

    URLs without a configured response fail with `HttpFetchError`.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._responses: Dict[str, Union[HttpResponse, Exception]] = {}
        self._calls: List[str] = []

    def add_response(self, url: str, html: str = "", links: Iterable[Union[str, Link]] = (), status_code: int = 200) -> HttpResponse:
        link_objs = tuple(link if isinstance(link, Link) else Link(link) for link in links)
        response = HttpResponse(url=url, status_code=status_code, text=html, content_type="text/html", links=link_objs)
        with self._lock:
            self._responses[url] = response
        return response

    def add_error(self, url: str, error: Exception) -> None:
        with self._lock:
            self._responses[url] = error

    def fetch(self, request: FetchRequest, stop_event=None) -> HttpResponse:
        with self._lock:
            self._calls.append(request.url)
            entry = self._responses.get(request.url)
        if entry is None:
            raise HttpFetchError(request.url, LookupError("no response configured"))
        if isinstance(entry, Exception):
            raise entry
        return entry

    @property
    def calls(self) -> List[str]:
        with self._lock:
            return list(self._calls)

    def call_count(self, url: Optional[str] = None) -> int:
        with self._lock:
            if url is None:
                return len(self._calls)
            return self._calls.count(url)
