import requests
from typing import Callable, Mapping, Optional

from sitecrawl.domain.http_response import HttpResponse
from sitecrawl.exceptions import HttpFetchError


class HttpService:
    """
    HTTP client wrapper for fetching web pages.

    Requires http_client callable for dependency injection (DIP compliance).
    This enables easy testing without patching and allows swapping HTTP libraries.
    Must be safe to share between crawler workers; `requests.get` is.
    """

    def __init__(self, user_agent: str, http_client: Callable, timeout: float = 10):
        self.user_agent = user_agent
        self.timeout = timeout
        self.http_client = http_client

    def fetch(self, url: str, headers: Optional[Mapping[str, str]] = None, timeout: Optional[float] = None) -> HttpResponse:
        """Fetch URL and return response with final URL, status code, body text and headers."""
        request_headers = {"User-Agent": self.user_agent}
        if headers:
            request_headers.update(headers)
        try:
            resp = self.http_client(url, headers=request_headers, timeout=timeout or self.timeout)
        except requests.exceptions.RequestException as e:
            raise HttpFetchError(url, e) from e

        # Extract headers if the response has them; let real exceptions bubble up.
        ct = None
        response_headers = {}
        if hasattr(resp, 'headers'):
            ct = resp.headers.get('Content-Type')
            if isinstance(resp.headers, Mapping):
                response_headers = dict(resp.headers)

        final_url = getattr(resp, 'url', None)
        if not isinstance(final_url, str) or not final_url:
            final_url = url

        return HttpResponse(
            url=final_url,
            status_code=resp.status_code,
            text=resp.text,
            content_type=ct,
            headers=response_headers,
        )
