from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from sitecrawl.domain.follow_behavior import FollowBehavior

DEFAULT_QUEUE_SIZE = 10_000
DEFAULT_PROGRESS_INTERVAL = 30.0
DEFAULT_IDLE_POLL_INTERVAL = 1.0


@dataclass(frozen=True)
class RetryOptions:
    """Retry behavior for failed fetches.

    Non-positive values fall back to the defaults (3 attempts, 1s initial
    backoff, 30s max backoff).
    """

    max_attempts: int = 3
    initial_backoff: float = 1.0
    max_backoff: float = 30.0

    def effective(self) -> "RetryOptions":
        return RetryOptions(
            max_attempts=self.max_attempts if self.max_attempts > 0 else 3,
            initial_backoff=self.initial_backoff if self.initial_backoff > 0 else 1.0,
            max_backoff=self.max_backoff if self.max_backoff > 0 else 30.0,
        )


@dataclass(frozen=True)
class CrawlerOptions:
    """Options bundle accepted by `Crawler`.

    `default_fetcher` is functionally required: without it, every URL whose
    domain matches no fetcher rule fails at dispatch time.
    """

    workers: int = 1
    max_urls: int = 0
    request_delay: float = 0.0
    cache: Optional[Any] = None
    known_urls: Sequence[str] = ()
    parser_rules: Sequence[Any] = ()
    default_parser: Optional[Any] = None
    fetcher_rules: Sequence[Any] = ()
    default_fetcher: Optional[Any] = None
    follow_behavior: FollowBehavior = FollowBehavior.SAME_DOMAIN
    logger: Optional[logging.Logger] = None
    show_progress: bool = False
    progress_interval: Optional[float] = None
    queue_size: int = DEFAULT_QUEUE_SIZE
    allow_http: bool = False
    preserve_query_params: bool = False
    retry_options: Optional[RetryOptions] = None
    idle_poll_interval: float = DEFAULT_IDLE_POLL_INTERVAL

    def with_defaults(self) -> "CrawlerOptions":
        """Return a copy with unset optional fields filled in."""
        progress_interval = self.progress_interval
        if self.show_progress and not progress_interval:
            progress_interval = DEFAULT_PROGRESS_INTERVAL
        return CrawlerOptions(
            workers=max(int(self.workers), 0),
            max_urls=max(int(self.max_urls or 0), 0),
            request_delay=max(float(self.request_delay or 0), 0.0),
            cache=self.cache,
            known_urls=tuple(self.known_urls or ()),
            parser_rules=tuple(self.parser_rules or ()),
            default_parser=self.default_parser,
            fetcher_rules=tuple(self.fetcher_rules or ()),
            default_fetcher=self.default_fetcher,
            follow_behavior=FollowBehavior.parse(self.follow_behavior),
            logger=self.logger,
            show_progress=bool(self.show_progress),
            progress_interval=progress_interval,
            queue_size=self.queue_size if self.queue_size and self.queue_size > 0 else DEFAULT_QUEUE_SIZE,
            allow_http=bool(self.allow_http),
            preserve_query_params=bool(self.preserve_query_params),
            retry_options=self.retry_options.effective() if self.retry_options else None,
            idle_poll_interval=self.idle_poll_interval if self.idle_poll_interval and self.idle_poll_interval > 0 else DEFAULT_IDLE_POLL_INTERVAL,
        )
