"""Dependency injection container for the application."""
from dependency_injector import containers, providers
import requests

from sitecrawl.domain.config import CrawlerOptions
from sitecrawl.services.crawler import Crawler
from sitecrawl.services.crawler_config_parser import CrawlJobConfigParser
from sitecrawl.services.fetcher import HttpFetcher
from sitecrawl.services.html_extractor import HtmlExtractor
from sitecrawl.services.http_service import HttpService
from sitecrawl.services.page_cache import InMemoryPageCache
from sitecrawl.services.parsers import PageMetadataParser
from sitecrawl import config as env


# Environment variables used by the container (read via `sitecrawl.config` helpers).
#
# USER_AGENT (str, default: "SiteCrawl/0.1")
#   User-Agent header for outbound HTTP requests.
#
# HTTP_TIMEOUT (int seconds, default: 10)
#   Timeout for outbound HTTP requests.
#
# CRAWL_WORKERS (int, default: 4)
#   Number of concurrent crawl workers.
#
# CRAWL_DELAY (float seconds, default: 0.0)
#   Pause each worker takes after processing a URL.
#
# CRAWL_QUEUE_SIZE (int, default: 10000)
#   Capacity of the crawl queue; discovered URLs are dropped when it is full.
#
# CRAWL_MAX_URLS (int | optional)
#   Stop admitting new URLs once this many have been processed. Unset = unlimited.
#
# CRAWL_FOLLOW (str, default: "same-domain")
#   Link following policy: any, same-domain, related-subdomains or none.
#
# CRAWL_PROGRESS_INTERVAL (float seconds, default: 30)
#   How often progress is logged when progress reporting is on.
#
# CRAWL_CACHE_MAX_ENTRIES (int | optional)
#   LRU bound for the in-memory page cache. Unset = unbounded.
ENV = {
    "USER_AGENT": env.USER_AGENT,
    "HTTP_TIMEOUT": env.HTTP_TIMEOUT,
    "CRAWL_WORKERS": env.CRAWL_WORKERS,
    "CRAWL_DELAY": env.CRAWL_DELAY,
    "CRAWL_QUEUE_SIZE": env.CRAWL_QUEUE_SIZE,
    "CRAWL_MAX_URLS": env.crawl_max_urls(),
    "CRAWL_FOLLOW": env.crawl_follow(),
    "CRAWL_PROGRESS_INTERVAL": env.crawl_progress_interval(),
    "CRAWL_CACHE_MAX_ENTRIES": env.cache_max_entries(),
}


class Container(containers.DeclarativeContainer):
    """Dependency injection container for SiteCrawl."""

    config = providers.Configuration(default=ENV)

    http_service = providers.Singleton(
        HttpService,
        user_agent=config.USER_AGENT.as_(str),
        http_client=providers.Object(requests.get),
        timeout=config.HTTP_TIMEOUT.as_(int),
    )

    html_extractor = providers.Singleton(HtmlExtractor)

    http_fetcher = providers.Singleton(
        HttpFetcher,
        http_service=http_service,
        extractor=html_extractor,
    )

    page_parser = providers.Singleton(
        PageMetadataParser,
        extractor=html_extractor,
    )

    page_cache = providers.Singleton(
        InMemoryPageCache,
        max_entries=config.CRAWL_CACHE_MAX_ENTRIES,
    )

    job_config_parser = providers.Singleton(CrawlJobConfigParser)

    crawler_options = providers.Factory(
        CrawlerOptions,
        workers=config.CRAWL_WORKERS.as_(int),
        max_urls=config.CRAWL_MAX_URLS.as_(int),
        request_delay=config.CRAWL_DELAY.as_(float),
        queue_size=config.CRAWL_QUEUE_SIZE.as_(int),
        follow_behavior=config.CRAWL_FOLLOW.as_(str),
        progress_interval=config.CRAWL_PROGRESS_INTERVAL.as_(float),
        default_fetcher=http_fetcher,
        default_parser=page_parser,
    )

    # Factory: a Crawler runs one crawl at a time, callers get a fresh one
    crawler = providers.Factory(
        Crawler,
        options=crawler_options,
    )
