"""Custom exceptions for SiteCrawl services."""


class InvalidURLError(ValueError):
    """Raised when an address cannot be normalized into a crawlable URL."""

    def __init__(self, url: str, reason: str = "invalid url"):
        self.url = url
        self.reason = reason
        super().__init__(f"{reason}: {url!r}")


class RulePatternError(ValueError):
    """Raised when a parser/fetcher rule pattern fails to compile."""

    def __init__(self, pattern: str, original: Exception):
        self.pattern = pattern
        self.original = original
        super().__init__(f"Invalid rule pattern {pattern!r}: {original}")


class NoFetcherError(Exception):
    """Raised when no fetcher rule or default fetcher serves a domain."""

    def __init__(self, domain: str):
        self.domain = domain
        super().__init__(f"no fetcher configured for domain {domain!r}")


class CrawlerAlreadyRunningError(RuntimeError):
    def __init__(self):
        super().__init__("crawler is already running")


class CrawlCancelledError(Exception):
    """Raised when a crawl is cancelled while its seed URLs are being queued."""

    def __init__(self, queued: int = 0):
        self.queued = queued
        super().__init__(f"crawl cancelled after queueing {queued} url(s)")


class HttpFetchError(Exception):
    """Raised when an HTTP fetch fails due to network/transport errors."""

    def __init__(self, url: str, original: Exception):
        self.url = url
        self.original = original
        super().__init__(f"HTTP fetch failed for {url}: {original}")


class CacheMissError(KeyError):
    """Raised by page caches when a key is not present."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(key)

    def __str__(self):
        return f"cache miss for {self.key!r}"


class ParseError(Exception):
    """Raised by parsers that could only extract part of a page.

    Whatever was extracted before the failure travels in `partial` and is
    still handed to the crawl callback.
    """

    def __init__(self, message: str, partial=None):
        self.partial = partial
        super().__init__(message)
