import argparse
import dataclasses
import logging
import sys
import threading
from typing import List, Optional

from sitecrawl import config as env
from sitecrawl.container import Container
from sitecrawl.domain.crawl_result import CrawlResult
from sitecrawl.exceptions import CrawlCancelledError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sitecrawl", description="Crawl one or more sites starting from seed URLs.")
    parser.add_argument("urls", nargs="*", help="seed URLs")
    parser.add_argument("--config", help="YAML crawl job file")
    parser.add_argument("--workers", type=int, help="number of concurrent workers")
    parser.add_argument("--max", dest="max_urls", type=int, help="maximum number of URLs to process (0 = unlimited)")
    parser.add_argument("--delay", type=float, help="seconds each worker waits between URLs")
    parser.add_argument("--follow", help="any, same-domain, related-subdomains or none")
    parser.add_argument("--allow-http", action="store_true", default=None, help="do not upgrade http:// URLs to https://")
    parser.add_argument("--keep-query", action="store_true", default=None, help="keep query strings when normalizing URLs")
    parser.add_argument("--progress", action="store_true", default=None, help="log progress periodically")
    parser.add_argument("--log-level", default=None, help="logging level (default: LOG_LEVEL or INFO)")
    return parser


def _describe(result: CrawlResult) -> str:
    if result.error is not None and result.response is None:
        return f"FAIL {result.url}: {result.error}"
    title = getattr(result.parsed, "title", None) or ""
    return f"OK {result.url} - {title}"


def main(argv: Optional[List[str]] = None, container: Optional[Container] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=(args.log_level or env.log_level()).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if container is None:
        container = Container()

    options = container.crawler_options()
    cache = None
    seeds = list(args.urls)

    if args.config:
        job = container.job_config_parser().load_file(args.config)
        if job is None:
            print(f"Could not load job file {args.config}", file=sys.stderr)
            return 2
        options = job.to_options(options)
        seeds.extend(job.seeds)
        if job.cache:
            cache = container.page_cache()

    if not seeds:
        print("No seed URLs given", file=sys.stderr)
        return 2

    overrides = {
        "workers": args.workers,
        "max_urls": args.max_urls,
        "request_delay": args.delay,
        "follow_behavior": args.follow,
        "allow_http": args.allow_http,
        "preserve_query_params": args.keep_query,
        "show_progress": args.progress,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if cache is not None:
        overrides["cache"] = cache
    options = dataclasses.replace(options, **overrides)

    crawler = container.crawler(options=options)
    print_lock = threading.Lock()

    def on_result(result: CrawlResult) -> None:
        with print_lock:
            print(_describe(result), flush=True)

    try:
        crawler.crawl(seeds, on_result)
    except CrawlCancelledError as e:
        logger.warning("Crawl cancelled: %s", e)
    except KeyboardInterrupt:
        print("Interrupted, stopping crawl", file=sys.stderr)
        crawler.stop()
    finally:
        if cache is not None:
            cache.close()

    stats = crawler.get_stats()
    print(f"Processed {stats.processed} url(s): {stats.succeeded} succeeded, {stats.failed} failed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
