import logging
from typing import Iterable, List, Optional, Union

from sitecrawl.domain.follow_behavior import FollowBehavior
from sitecrawl.domain.http_response import Link
from sitecrawl.exceptions import InvalidURLError
from sitecrawl.utils.urls import are_related_hosts, are_same_host, normalize_url, resolve_link


class LinkProcessor:
    """Turns a page's raw links into crawl candidates and applies the follow policy."""

    def __init__(self, follow_behavior: FollowBehavior = FollowBehavior.SAME_DOMAIN, *, allow_http: bool = False, preserve_query_params: bool = False, logger: Optional[logging.Logger] = None):
        self.follow_behavior = FollowBehavior.parse(follow_behavior)
        self.logger = logger or logging.getLogger(__name__)
        self.allow_http = allow_http
        self.preserve_query_params = preserve_query_params

    def normalize(self, raw_url: str) -> str:
        return normalize_url(raw_url, allow_http=self.allow_http, preserve_query_params=self.preserve_query_params)

    def extract_urls(self, links: Iterable[Union[Link, str]], page_url: str) -> List[str]:
        """Resolve links against `page_url`; returns sorted, de-duplicated absolute URLs."""
        resolved = set()
        for link in links or ():
            href = link.url if isinstance(link, Link) else link
            absolute = resolve_link(
                page_url,
                href,
                allow_http=self.allow_http,
                preserve_query_params=self.preserve_query_params,
            )
            if absolute is not None:
                resolved.add(absolute)
        return sorted(resolved)

    def filter_links(self, page_url: str, urls: Iterable[str]) -> List[str]:
        """Keep the URLs the follow behavior allows crawling from `page_url`."""
        if self.follow_behavior == FollowBehavior.NONE:
            return []
        filtered = []
        for raw_url in urls:
            try:
                candidate = self.normalize(raw_url)
            except InvalidURLError:
                continue
            if self.follow_behavior == FollowBehavior.ANY:
                filtered.append(raw_url)
            elif self.follow_behavior == FollowBehavior.SAME_DOMAIN:
                if are_same_host(candidate, page_url):
                    filtered.append(raw_url)
                else:
                    self.logger.debug("Skipping (external) %s -> not same host as %s", raw_url, page_url)
            elif self.follow_behavior == FollowBehavior.RELATED_SUBDOMAINS:
                if are_related_hosts(candidate, page_url):
                    filtered.append(raw_url)
                else:
                    self.logger.debug("Skipping (unrelated) %s -> not related to %s", raw_url, page_url)
        return filtered
