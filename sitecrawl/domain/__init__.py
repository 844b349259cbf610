"""Domain objects for SiteCrawl - explicit re-exports to satisfy linters."""
from .http_response import FetchRequest as FetchRequest
from .http_response import HttpResponse as HttpResponse
from .http_response import Link as Link
from .crawl_result import CrawlResult as CrawlResult
from .config import CrawlerOptions as CrawlerOptions
from .config import RetryOptions as RetryOptions
from .crawler_stats import CrawlerStats as CrawlerStats
from .follow_behavior import FollowBehavior as FollowBehavior
from .visited_tracker import VisitedTracker as VisitedTracker

__all__ = [
    "FetchRequest",
    "HttpResponse",
    "Link",
    "CrawlResult",
    "CrawlerOptions",
    "RetryOptions",
    "CrawlerStats",
    "FollowBehavior",
    "VisitedTracker",
]
