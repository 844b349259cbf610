import logging
from typing import Callable, List, NamedTuple, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from sitecrawl.domain.http_response import Link

logger = logging.getLogger(__name__)


class PageMetadata(NamedTuple):
    title: Optional[str] = None
    description: Optional[str] = None
    canonical_url: Optional[str] = None


class HtmlExtractor:
    """BeautifulSoup helpers for pulling links and metadata out of page markup."""

    def __init__(
        self,
        soup_factory: Optional[Callable[[str], BeautifulSoup]] = None,
    ):
        self._soup_factory = soup_factory or (lambda html: BeautifulSoup(html, "html.parser"))

    def extract_links(self, base_url: str, html: Optional[str]) -> List[Link]:
        if not html:
            return []
        soup = self._soup_factory(html)
        links = []
        for a in soup.find_all("a", href=True):
            href = a.get("href")
            links.append(Link(urljoin(base_url, href), a.get_text(strip=True)))
        return links

    def extract_metadata(self, html: Optional[str]) -> PageMetadata:
        if not html:
            return PageMetadata()
        soup = self._soup_factory(html)

        title = None
        if soup.title is not None and soup.title.string:
            title = soup.title.string.strip() or None

        description = None
        meta = soup.find("meta", attrs={"name": "description"})
        if meta is None:
            meta = soup.find("meta", attrs={"property": "og:description"})
        if meta is not None and meta.get("content"):
            description = meta.get("content").strip() or None

        canonical = None
        for link in soup.find_all("link", href=True):
            rel = link.get("rel") or []
            if "canonical" in [r.lower() for r in rel]:
                canonical = link.get("href").strip() or None
                break

        return PageMetadata(title=title, description=description, canonical_url=canonical)
