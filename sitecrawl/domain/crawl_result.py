"""Per-page crawl result data model."""
from typing import Any, NamedTuple, Optional, Sequence

from sitecrawl.domain.http_response import HttpResponse


class CrawlResult(NamedTuple):
    """Outcome of crawling a single URL, handed to the crawl callback.

    When `error` is set the other fields may be partial: a fetch failure
    leaves only `url`, while a parse failure still carries the response
    and the discovered links.
    """
    url: str
    """Normalized URL that was crawled"""

    parsed: Any = None
    """Value returned by the parser resolved for the domain, if any"""

    links: Sequence[str] = ()
    """Absolute URLs discovered on the page, before follow filtering"""

    response: Optional[HttpResponse] = None
    """Raw fetch response, or a response synthesized from the cache"""

    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None
