import ipaddress
import logging
from typing import Optional, Union
from urllib.parse import SplitResult, urljoin, urlsplit, urlunsplit

import tldextract

from sitecrawl.exceptions import InvalidURLError

logger = logging.getLogger(__name__)

# Bundled public suffix snapshot only; never fetch the list over the network.
_extract = tldextract.TLDExtract(suffix_list_urls=())

UrlLike = Union[str, SplitResult]


def normalize_url(raw: str, *, allow_http: bool = False, preserve_query_params: bool = False) -> str:
    """Return the canonical form of `raw`.

    - Leading/trailing whitespace is trimmed; empty input is rejected.
    - A missing scheme becomes https; schemes other than http(s) are rejected.
    - http is upgraded to https unless `allow_http` is set.
    - Query parameters are dropped unless `preserve_query_params` is set;
      fragments are always dropped.
    - The host is lowercased and a bare root path ("/") is removed.

    Normalizing an already-normalized URL returns it unchanged.
    """
    value = (raw or "").strip()
    if not value:
        raise InvalidURLError(raw, "invalid empty url")

    lowered = value.lower()
    if lowered.startswith("//"):
        value = "https:" + value
    elif not (lowered.startswith("http://") or lowered.startswith("https://")):
        if "://" in value or lowered.startswith(("mailto:", "javascript:", "tel:", "data:")):
            raise InvalidURLError(raw, "unsupported url scheme")
        value = "https://" + value

    try:
        parts = urlsplit(value)
        # accessing .port validates it
        parts.port
    except ValueError as e:
        raise InvalidURLError(raw, f"invalid url ({e})") from e

    scheme = parts.scheme.lower()
    if scheme == "http" and not allow_http:
        scheme = "https"
    if not parts.hostname:
        raise InvalidURLError(raw, "url has no host")

    path = parts.path
    if path == "/":
        path = ""
    query = parts.query if preserve_query_params else ""
    return urlunsplit((scheme, parts.netloc.lower(), path, query, ""))


def _hostname(value: UrlLike) -> str:
    parts = value if isinstance(value, SplitResult) else urlsplit(value)
    return (parts.hostname or "").lower()


def are_same_host(a: UrlLike, b: UrlLike) -> bool:
    """True when both URLs have the same hostname (case-insensitive, port ignored)."""
    try:
        ha = _hostname(a)
        hb = _hostname(b)
    except ValueError:
        logger.debug("Error comparing hosts: a=%s, b=%s", a, b)
        return False
    return bool(ha) and ha == hb


def registrable_domain(host: str) -> Optional[str]:
    """Return the eTLD+1 of `host`, or None for IPs and single-label hosts.

    A last label missing from the public suffix list (`.test`, `.internal`)
    counts as the suffix, so `www.a.test` maps to `a.test`.
    """
    host = (host or "").strip(".").lower()
    if not host:
        return None
    try:
        ipaddress.ip_address(host)
    except ValueError:
        pass
    else:
        return None
    ext = _extract(host)
    if ext.suffix:
        # a bare public suffix (co.uk) has no registrable domain
        return f"{ext.domain}.{ext.suffix}" if ext.domain else None
    labels = host.split(".")
    if len(labels) < 2:
        return None
    return ".".join(labels[-2:])


def are_related_hosts(a: UrlLike, b: UrlLike) -> bool:
    """True when both URLs share a registrable domain (www.example.com ~ blog.example.com)."""
    try:
        da = registrable_domain(_hostname(a))
        db = registrable_domain(_hostname(b))
    except ValueError:
        logger.debug("Error comparing hosts: a=%s, b=%s", a, b)
        return False
    return da is not None and da == db


def resolve_link(
    base_url: str,
    link: str,
    *,
    allow_http: bool = False,
    preserve_query_params: bool = False,
) -> Optional[str]:
    """Resolve `link` against `base_url` and normalize it.

    Returns None for links that cannot be crawled (mailto:, javascript:,
    malformed URLs).
    """
    try:
        parts = urlsplit((link or "").strip())
    except ValueError:
        return None
    without_fragment = urlunsplit(parts._replace(fragment=""))

    if parts.scheme:
        if parts.scheme.lower() not in ("http", "https"):
            return None
        absolute = without_fragment
    else:
        try:
            absolute = urljoin(base_url, without_fragment)
        except ValueError:
            return None

    try:
        return normalize_url(absolute, allow_http=allow_http, preserve_query_params=preserve_query_params)
    except InvalidURLError:
        return None
