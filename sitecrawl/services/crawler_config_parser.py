import os
from dataclasses import dataclass, field, replace
from typing import List, Optional

import yaml

from sitecrawl.domain.config import CrawlerOptions, RetryOptions
from sitecrawl.domain.follow_behavior import FollowBehavior


@dataclass
class CrawlJobConfig:
    """A crawl job as described by a YAML file."""

    name: Optional[str] = None
    seeds: List[str] = field(default_factory=list)
    workers: Optional[int] = None
    max_urls: Optional[int] = None
    delay_seconds: Optional[float] = None
    queue_size: Optional[int] = None
    follow: Optional[FollowBehavior] = None
    allow_http: bool = False
    preserve_query_params: bool = False
    known_urls: List[str] = field(default_factory=list)
    show_progress: bool = False
    progress_interval: Optional[float] = None
    cache: bool = False
    retry: Optional[RetryOptions] = None

    def to_options(self, base: Optional[CrawlerOptions] = None, **overrides) -> CrawlerOptions:
        """Apply this job on top of `base`; fields the job leaves unset keep the base values."""
        values = {
            "known_urls": tuple(self.known_urls),
            "allow_http": self.allow_http,
            "preserve_query_params": self.preserve_query_params,
            "show_progress": self.show_progress,
            "retry_options": self.retry,
        }
        if self.workers is not None:
            values["workers"] = self.workers
        if self.max_urls is not None:
            values["max_urls"] = self.max_urls
        if self.delay_seconds is not None:
            values["request_delay"] = self.delay_seconds
        if self.queue_size is not None:
            values["queue_size"] = self.queue_size
        if self.follow is not None:
            values["follow_behavior"] = self.follow
        if self.progress_interval is not None:
            values["progress_interval"] = self.progress_interval
        values.update(overrides)
        return replace(base or CrawlerOptions(), **values)


def _as_list(value) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


class CrawlJobConfigParser:
    """Parse YAML crawl job files into CrawlJobConfig.

    Responsibility: schema/validation only; the crawler itself never reads files.
    """

    def parse(self, data: dict, *, config_path: Optional[str] = None) -> Optional[CrawlJobConfig]:
        if not isinstance(data, dict):
            return None

        retry = None
        retry_dict = data.get("retry")
        if isinstance(retry_dict, dict):
            retry = RetryOptions(
                max_attempts=int(retry_dict.get("max_attempts", 3)),
                initial_backoff=float(retry_dict.get("initial_backoff", 1.0)),
                max_backoff=float(retry_dict.get("max_backoff", 30.0)),
            )
        elif retry_dict is True:
            retry = RetryOptions()

        follow = data.get("follow")
        name = data.get("name")
        if name is None and config_path:
            name = os.path.splitext(os.path.basename(config_path))[0]

        return CrawlJobConfig(
            name=name,
            seeds=_as_list(data.get("seeds")),
            workers=data.get("workers"),
            max_urls=data.get("max_urls"),
            delay_seconds=data.get("delay_seconds"),
            queue_size=data.get("queue_size"),
            # raises ValueError on unknown values
            follow=FollowBehavior.parse(follow) if follow is not None else None,
            allow_http=bool(data.get("allow_http", False)),
            preserve_query_params=bool(data.get("preserve_query_params", False)),
            known_urls=_as_list(data.get("known_urls")),
            show_progress=bool(data.get("show_progress", False)),
            progress_interval=data.get("progress_interval"),
            cache=bool(data.get("cache", False)),
            retry=retry,
        )

    def load_file(self, path: str) -> Optional[CrawlJobConfig]:
        """Read and parse a job file; None if it is missing or not a YAML mapping."""
        if not os.path.isfile(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return self.parse(data, config_path=path)
