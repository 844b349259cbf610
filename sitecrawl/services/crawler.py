"""Concurrent site crawler.

Example::

    crawler = Crawler(CrawlerOptions(
        workers=4,
        max_urls=500,
        default_fetcher=HttpFetcher(HttpService("SiteCrawl/0.1", requests.get)),
        default_parser=PageMetadataParser(),
    ))
    crawler.crawl(["https://example.com"], lambda result: print(result.url, result.error))
    print(crawler.get_stats())
"""
import dataclasses
import logging
import queue
import threading
from typing import Callable, Iterable, List, Optional, Union
from urllib.parse import urlsplit

from sitecrawl.domain.config import CrawlerOptions
from sitecrawl.domain.crawl_result import CrawlResult
from sitecrawl.domain.crawler_stats import CrawlerStats
from sitecrawl.domain.http_response import FetchRequest, HttpResponse
from sitecrawl.domain.visited_tracker import VisitedTracker
from sitecrawl.exceptions import CacheMissError, CrawlCancelledError, CrawlerAlreadyRunningError, InvalidURLError, NoFetcherError
from sitecrawl.services.cancellation import CancelScope
from sitecrawl.services.crawl_monitors import IdleMonitor, ProgressReporter
from sitecrawl.services.fetch_retry import RetryingFetcher
from sitecrawl.services.html_extractor import HtmlExtractor
from sitecrawl.services.link_processor import LinkProcessor
from sitecrawl.services.rules import FetcherRule, ParserRule, RuleTable

logger = logging.getLogger(__name__)

Callback = Callable[[CrawlResult], None]

# how long a blocked queue operation waits before re-checking cancellation
_QUEUE_POLL_INTERVAL = 0.05


class _CrawlRun:
    """State owned by a single `Crawler.crawl` invocation."""

    def __init__(self, scope: CancelScope, work_queue: "queue.Queue[str]", callback: Callback):
        self.scope = scope
        self.queue = work_queue
        self.callback = callback
        self._lock = threading.Lock()
        self.active_workers = 0
        # queued + in-flight URLs
        self.outstanding = 0

    def add_outstanding(self) -> None:
        with self._lock:
            self.outstanding += 1

    def remove_outstanding(self) -> None:
        with self._lock:
            self.outstanding -= 1

    def worker_started(self) -> None:
        with self._lock:
            self.active_workers += 1

    def worker_finished(self) -> None:
        with self._lock:
            self.active_workers -= 1
            self.outstanding -= 1

    def is_idle(self) -> bool:
        with self._lock:
            return self.outstanding <= 0 and self.active_workers == 0 and self.queue.qsize() == 0


class Crawler:
    """Crawls sites with a pool of worker threads.

    Each normalized URL is scheduled at most once per crawler, no matter
    how many seeds or pages point at it. Fetchers and parsers are chosen
    per domain by priority-sorted rules with default fallbacks. A crawl
    ends when it goes idle (empty queue, no busy worker), when `stop()` is
    called, or when the caller's stop event is set.
    """

    def __init__(self, options: Optional[CrawlerOptions] = None, **overrides):
        opts = options or CrawlerOptions()
        if overrides:
            opts = dataclasses.replace(opts, **overrides)
        opts = opts.with_defaults()
        self.options = opts
        self.logger = opts.logger or logger

        self.workers = opts.workers
        self.max_urls = opts.max_urls
        self.request_delay = opts.request_delay
        self.cache = opts.cache
        self.follow_behavior = opts.follow_behavior
        self.retry_options = opts.retry_options
        self.show_progress = opts.show_progress
        self.progress_interval = opts.progress_interval
        self.idle_poll_interval = opts.idle_poll_interval

        self.stats = CrawlerStats()
        self.link_processor = LinkProcessor(
            opts.follow_behavior,
            allow_http=opts.allow_http,
            preserve_query_params=opts.preserve_query_params,
            logger=self.logger,
        )
        self.extractor = HtmlExtractor()
        self.queue: "queue.Queue[str]" = queue.Queue(maxsize=opts.queue_size)

        self.visited = VisitedTracker()
        self.known_urls: List[str] = []
        for raw_url in opts.known_urls:
            try:
                value = self._canonical(raw_url)
            except InvalidURLError as e:
                self.logger.warning("Ignoring invalid known url %s: %s", raw_url, e)
                continue
            self.visited.mark_if_new(value)
            self.known_urls.append(value)

        self._parsers: RuleTable = RuleTable(default=opts.default_parser)
        self._fetchers: RuleTable = RuleTable(default=opts.default_fetcher)
        self.add_parser_rules(*opts.parser_rules)
        self.add_fetcher_rules(*opts.fetcher_rules)

        self._state_lock = threading.Lock()
        self._running = False
        self._run: Optional[_CrawlRun] = None

    # -- rules -----------------------------------------------------------

    def add_parser_rules(self, *rules: ParserRule) -> None:
        """Add parser rules and re-sort by priority. Raises RulePatternError."""
        self._parsers.add(*rules)

    def add_fetcher_rules(self, *rules: FetcherRule) -> None:
        """Add fetcher rules and re-sort by priority. Raises RulePatternError."""
        self._fetchers.add(*rules)

    @property
    def parser_rules(self) -> list:
        return self._parsers.rules

    @property
    def fetcher_rules(self) -> list:
        return self._fetchers.rules

    def get_parser(self, domain: str):
        return self._parsers.resolve(domain)

    def get_fetcher(self, domain: str):
        return self._fetchers.resolve(domain)

    # -- lifecycle -------------------------------------------------------

    @property
    def is_running(self) -> bool:
        with self._state_lock:
            return self._running

    def get_stats(self) -> CrawlerStats:
        """Live counters; they keep accumulating across crawls."""
        return self.stats

    def stop(self) -> None:
        """Cancel the running crawl, if any. Safe to call repeatedly and from any thread."""
        with self._state_lock:
            run = self._run
        if run is not None:
            run.scope.cancel()

    def crawl(self, seeds: Union[str, Iterable[str]], callback: Callback, stop_event: Optional[threading.Event] = None) -> None:
        """Crawl from `seeds`, calling `callback` once per processed URL.

        Blocks until the crawl goes idle or is cancelled via `stop()` or
        `stop_event`. The callback runs on worker threads and should return
        quickly.

        Raises CrawlerAlreadyRunningError if a crawl is already running on
        this crawler, and CrawlCancelledError if cancellation fires while
        the seeds are still being queued.
        """
        if isinstance(seeds, str):
            seeds = [seeds]

        with self._state_lock:
            if self._running:
                raise CrawlerAlreadyRunningError()
            self._running = True
            self.queue = queue.Queue(maxsize=self.options.queue_size)
            run = _CrawlRun(CancelScope(parent=stop_event), self.queue, callback)
            self._run = run

        try:
            threads = []
            for i in range(self.workers):
                t = threading.Thread(target=self._worker, args=(run,), name=f"crawl-worker-{i}", daemon=True)
                t.start()
                threads.append(t)

            if self.show_progress:
                ProgressReporter(run.scope, self.stats, interval=self.progress_interval, log=self.logger).start()

            queued = self._enqueue(run, seeds, blocking=True)
            if queued == 0:
                self.logger.info("No new urls to crawl")
                return
            self.logger.info("Crawl started with %s seed url(s) and %s worker(s)", queued, self.workers)

            # after seed admission; an empty queue before that is not idle
            IdleMonitor(run.scope, run.is_idle, interval=self.idle_poll_interval, log=self.logger).start()

            for t in threads:
                t.join()
        finally:
            run.scope.cancel()
            with self._state_lock:
                self._running = False
                self._run = None

    # -- queueing --------------------------------------------------------

    def _canonical(self, raw_url: str) -> str:
        normalized = self.link_processor.normalize(raw_url)
        if normalized.endswith("/"):
            normalized = normalized[:-1]
        return normalized

    def _enqueue(self, run: _CrawlRun, urls: Iterable[str], *, blocking: bool) -> int:
        """Admit URLs to the queue; returns how many were actually queued.

        Seeds (`blocking=True`) wait for queue space until cancelled.
        URLs discovered by workers are dropped when the queue is full.
        """
        urls = list(urls)
        if self.max_urls > 0:
            allowed = self.max_urls - self.stats.processed
            if allowed <= 0:
                return 0
            if allowed < len(urls):
                urls = urls[:allowed]

        queued = 0
        for raw_url in urls:
            if run.scope.is_set():
                raise CrawlCancelledError(queued)
            try:
                value = self._canonical(raw_url)
            except InvalidURLError as e:
                self.logger.warning("Invalid url %s: %s", raw_url, e)
                continue

            if not self.visited.mark_if_new(value):
                continue

            run.add_outstanding()
            if blocking:
                while True:
                    try:
                        run.queue.put(value, timeout=_QUEUE_POLL_INTERVAL)
                        break
                    except queue.Full:
                        if run.scope.is_set():
                            run.remove_outstanding()
                            raise CrawlCancelledError(queued) from None
            else:
                try:
                    run.queue.put_nowait(value)
                except queue.Full:
                    run.remove_outstanding()
                    self.logger.debug("Queue full, skipping url %s", value)
                    continue
            queued += 1
        return queued

    # -- workers ---------------------------------------------------------

    def _worker(self, run: _CrawlRun) -> None:
        while not run.scope.is_set():
            try:
                raw_url = run.queue.get(timeout=_QUEUE_POLL_INTERVAL)
            except queue.Empty:
                continue
            if run.scope.is_set():
                run.remove_outstanding()
                return

            run.worker_started()
            try:
                self._process_url(run, raw_url)
            except Exception:
                self.logger.exception("Unexpected error while processing %s", raw_url)
            finally:
                run.worker_finished()

            if self.request_delay > 0:
                run.scope.wait(self.request_delay)

    def _deliver(self, run: _CrawlRun, result: CrawlResult) -> None:
        try:
            run.callback(result)
        except Exception:
            self.logger.exception("Crawl callback failed for %s", result.url)

    def _cached_response(self, raw_url: str) -> Optional[HttpResponse]:
        # raw_url is already canonical; it is the cache key
        if self.cache is None:
            return None
        try:
            cached = self.cache.get(raw_url)
        except CacheMissError:
            return None
        except Exception as e:
            self.logger.warning("Cache read failed for %s: %s", raw_url, e)
            return None

        self.logger.debug("Cache hit for %s", raw_url)
        if isinstance(cached, bytes):
            text = cached.decode("utf-8", errors="replace")
        else:
            text = cached or ""
        links = self.extractor.extract_links(raw_url, text)
        return HttpResponse(url=raw_url, status_code=200, text=text, links=tuple(links))

    def _process_url(self, run: _CrawlRun, raw_url: str) -> None:
        self.stats.increment_processed()

        try:
            domain = urlsplit(raw_url).hostname
        except ValueError as e:
            self.logger.warning("Invalid url %s: %s", raw_url, e)
            return
        if not domain:
            self.logger.warning("Invalid url %s: no host", raw_url)
            return

        response = self._cached_response(raw_url)

        fetcher = self._fetchers.resolve(domain)
        if fetcher is None:
            self.logger.error("No fetcher configured for %s (domain %s)", raw_url, domain)
            self._deliver(run, CrawlResult(url=raw_url, error=NoFetcherError(domain)))
            self.stats.increment_failed()
            return

        if response is None:
            if self.retry_options is not None:
                fetcher = RetryingFetcher(fetcher, self.retry_options, log=self.logger)
            self.logger.debug("Fetching %s", raw_url)
            try:
                response = fetcher.fetch(FetchRequest(url=raw_url), stop_event=run.scope)
            except Exception as e:
                self.logger.warning("Fetch failed for %s: %s", raw_url, e)
                self._deliver(run, CrawlResult(url=raw_url, error=e))
                self.stats.increment_failed()
                return
            if self.cache is not None and response.text:
                try:
                    self.cache.set(raw_url, response.text.encode("utf-8"))
                except Exception as e:
                    self.logger.warning("Failed to cache %s: %s", raw_url, e)

        parsed = None
        parse_error = None
        parser = self._parsers.resolve(domain)
        if parser is not None:
            self.logger.info("Parsing %s with parser for domain %s", raw_url, domain)
            try:
                parsed = parser.parse(response)
            except Exception as e:
                parse_error = e
                parsed = getattr(e, "partial", None)
                self.logger.error("Failed to parse %s: %s", raw_url, e)

        discovered = self.link_processor.extract_urls(response.links, raw_url)
        self._deliver(run, CrawlResult(
            url=raw_url,
            parsed=parsed,
            links=discovered,
            response=response,
            error=parse_error,
        ))
        self.stats.increment_succeeded()

        filtered = self.link_processor.filter_links(raw_url, discovered)
        try:
            self._enqueue(run, filtered, blocking=False)
        except CrawlCancelledError as e:
            self.logger.warning("Failed to enqueue urls discovered on %s: %s", raw_url, e)
