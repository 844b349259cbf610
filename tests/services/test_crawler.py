import threading
from unittest.mock import MagicMock, Mock

import pytest

from sitecrawl.domain.config import CrawlerOptions, RetryOptions
from sitecrawl.domain.http_response import HttpResponse
from sitecrawl.exceptions import CrawlCancelledError, CrawlerAlreadyRunningError, HttpFetchError, ParseError, RulePatternError
from sitecrawl.services.crawler import Crawler
from sitecrawl.services.fetcher import InMemoryFetcher
from sitecrawl.services.page_cache import InMemoryPageCache
from sitecrawl.services.rules import FetcherRule, MatchType, ParserRule


def make_crawler(fetcher=None, **kwargs):
    kwargs.setdefault("idle_poll_interval", 0.02)
    return Crawler(CrawlerOptions(default_fetcher=fetcher, **kwargs))


class BlockingFetcher:
    """Fetcher that holds every request until the crawl is cancelled."""

    def __init__(self):
        self.started = threading.Event()

    def fetch(self, request, stop_event=None):
        self.started.set()
        stop_event.wait(5)
        raise RuntimeError("cancelled")


def _crawl_in_background(crawler, seeds, callback=None, **kwargs):
    errors = []

    def target():
        try:
            crawler.crawl(seeds, callback or (lambda result: None), **kwargs)
        except Exception as e:
            errors.append(e)

    t = threading.Thread(target=target, daemon=True)
    t.start()
    return t, errors


def test_constructor_rejects_invalid_rule_pattern():
    with pytest.raises(RulePatternError):
        Crawler(CrawlerOptions(parser_rules=[ParserRule("([", Mock(), match_type=MatchType.REGEX)]))


def test_constructor_applies_defaults():
    crawler = Crawler(CrawlerOptions(queue_size=0, show_progress=True))
    assert crawler.queue.maxsize == 10000
    assert crawler.progress_interval == 30.0
    assert crawler.follow_behavior == "same-domain"


def test_keyword_overrides_are_applied():
    crawler = Crawler(workers=3, follow_behavior="any")
    assert crawler.workers == 3
    assert crawler.follow_behavior == "any"


def test_fetcher_rules_route_domains_to_specific_fetchers():
    default = InMemoryFetcher()
    default.add_response("https://a.test", links=["https://b.test/page"])
    special = InMemoryFetcher()
    special.add_response("https://b.test/page")
    crawler = make_crawler(default, follow_behavior="any")
    crawler.add_fetcher_rules(FetcherRule("b.test", special))

    crawler.crawl(["https://a.test"], lambda r: None)

    assert default.calls == ["https://a.test"]
    assert special.calls == ["https://b.test/page"]


def test_parser_rules_pick_highest_priority_then_default():
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://a.test", links=["https://b.test/"])
    fetcher.add_response("https://b.test")
    low = Mock(**{"parse.return_value": "low"})
    high = Mock(**{"parse.return_value": "high"})
    default = Mock(**{"parse.return_value": "default"})
    crawler = make_crawler(fetcher, follow_behavior="any", default_parser=default)
    crawler.add_parser_rules(
        ParserRule("a.test", low, priority=5),
        ParserRule("*.test", high, match_type=MatchType.GLOB, priority=10),
        ParserRule("b.test", Mock(), priority=1),
    )
    results = {}

    crawler.crawl(["https://a.test"], lambda r: results.__setitem__(r.url, r.parsed))

    assert results == {"https://a.test": "high", "https://b.test": "high"}
    default.parse.assert_not_called()


def test_without_parser_result_has_no_parsed_value():
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://a.test", html="<title>x</title>")
    results = []
    make_crawler(fetcher).crawl(["https://a.test"], results.append)
    assert results[0].parsed is None
    assert results[0].ok
    assert results[0].response.text == "<title>x</title>"


def test_parse_error_is_reported_with_partial_value_and_counts_as_success():
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://a.test", links=["/next"])
    fetcher.add_response("https://a.test/next")
    parser = Mock()
    parser.parse.side_effect = ParseError("bad markup", partial={"title": "partial"})
    crawler = make_crawler(fetcher, default_parser=parser)
    results = []

    crawler.crawl(["https://a.test"], results.append)

    first = [r for r in results if r.url == "https://a.test"][0]
    assert isinstance(first.error, ParseError)
    assert first.parsed == {"title": "partial"}
    assert first.links == ["https://a.test/next"]
    assert crawler.get_stats().succeeded == 2
    assert crawler.get_stats().failed == 0
    assert fetcher.call_count("https://a.test/next") == 1


def test_fetch_error_is_delivered_and_counted_as_failed():
    fetcher = InMemoryFetcher()
    fetcher.add_error("https://a.test", HttpFetchError("https://a.test", ConnectionError("refused")))
    results = []
    crawler = make_crawler(fetcher)

    crawler.crawl(["https://a.test"], results.append)

    assert len(results) == 1
    assert isinstance(results[0].error, HttpFetchError)
    assert results[0].response is None
    assert crawler.get_stats().failed == 1


def test_retry_options_wrap_the_resolved_fetcher():
    fetcher = Mock()
    fetcher.fetch.side_effect = [
        HttpFetchError("https://a.test", ConnectionError("reset")),
        HttpResponse("https://a.test", 200, "ok"),
    ]
    crawler = make_crawler(fetcher, retry_options=RetryOptions(max_attempts=3, initial_backoff=0.01, max_backoff=0.01))

    crawler.crawl(["https://a.test"], lambda r: None)

    assert fetcher.fetch.call_count == 2
    assert crawler.get_stats().succeeded == 1


def test_fetched_pages_are_written_to_cache():
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://a.test", html="<p>hello</p>")
    cache = InMemoryPageCache()

    make_crawler(fetcher, cache=cache).crawl(["https://a.test"], lambda r: None)

    assert cache.get("https://a.test") == b"<p>hello</p>"


def test_empty_pages_are_not_cached():
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://a.test", html="")
    cache = InMemoryPageCache()

    make_crawler(fetcher, cache=cache).crawl(["https://a.test"], lambda r: None)

    assert len(cache) == 0


def test_cache_failures_never_fail_the_crawl():
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://a.test", html="<p>hello</p>")
    cache = MagicMock()
    cache.get.side_effect = OSError("disk gone")
    cache.set.side_effect = OSError("disk gone")
    crawler = make_crawler(fetcher, cache=cache)

    crawler.crawl(["https://a.test"], lambda r: None)

    assert fetcher.call_count("https://a.test") == 1
    assert crawler.get_stats().succeeded == 1


def test_known_urls_are_never_crawled():
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://a.test", links=["/old", "/new"])
    fetcher.add_response("https://a.test/new")
    crawler = make_crawler(fetcher, known_urls=["http://a.test/old/"])

    crawler.crawl(["https://a.test"], lambda r: None)

    assert fetcher.call_count("https://a.test/old") == 0
    assert fetcher.call_count("https://a.test/new") == 1


def test_invalid_seeds_are_skipped_without_counting():
    log = Mock()
    fetcher = InMemoryFetcher()
    crawler = make_crawler(fetcher, logger=log)

    crawler.crawl(["mailto:someone@a.test", ""], lambda r: None)

    assert crawler.get_stats().processed == 0
    assert log.warning.call_count == 2
    assert not crawler.is_running


def test_recrawling_known_seed_returns_immediately():
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://a.test")
    crawler = make_crawler(fetcher)
    crawler.crawl(["https://a.test"], lambda r: None)

    crawler.crawl(["https://a.test/"], lambda r: None)

    assert fetcher.call_count("https://a.test") == 1
    assert crawler.get_stats().processed == 1


def test_stats_accumulate_across_crawls():
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://a.test")
    fetcher.add_response("https://b.test")
    crawler = make_crawler(fetcher)

    crawler.crawl(["https://a.test"], lambda r: None)
    crawler.crawl(["https://b.test"], lambda r: None)

    assert crawler.get_stats().processed == 2


def test_full_queue_drops_discovered_urls_but_remembers_them():
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://a.test", links=["/1", "/2", "/3"])
    for path in ("/1", "/2", "/3"):
        fetcher.add_response("https://a.test" + path)
    crawler = make_crawler(fetcher, workers=1, queue_size=1)

    crawler.crawl(["https://a.test"], lambda r: None)

    assert crawler.get_stats().processed == 2
    assert fetcher.call_count("https://a.test/1") == 1
    assert crawler.visited.is_visited("https://a.test/2")
    assert fetcher.call_count("https://a.test/2") == 0


def test_callback_exceptions_do_not_stop_the_crawl():
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://a.test", links=["/x"])
    fetcher.add_response("https://a.test/x")
    crawler = make_crawler(fetcher)

    def callback(result):
        raise ValueError("callback bug")

    crawler.crawl(["https://a.test"], callback)

    assert crawler.get_stats().processed == 2


def test_crawl_rejects_reentry_and_stop_ends_crawl():
    fetcher = BlockingFetcher()
    crawler = make_crawler(fetcher)
    thread, errors = _crawl_in_background(crawler, ["https://a.test"])
    assert fetcher.started.wait(2)
    assert crawler.is_running

    with pytest.raises(CrawlerAlreadyRunningError):
        crawler.crawl(["https://b.test"], lambda r: None)

    crawler.stop()
    crawler.stop()
    thread.join(2)
    assert not thread.is_alive()
    assert errors == []
    assert not crawler.is_running
    assert crawler.get_stats().failed == 1


def test_stop_without_running_crawl_is_noop():
    crawler = make_crawler(InMemoryFetcher())
    crawler.stop()
    assert not crawler.is_running


def test_caller_stop_event_cancels_crawl():
    fetcher = BlockingFetcher()
    crawler = make_crawler(fetcher)
    stop_event = threading.Event()
    thread, errors = _crawl_in_background(crawler, ["https://a.test"], stop_event=stop_event)
    assert fetcher.started.wait(2)

    stop_event.set()
    thread.join(2)

    assert not thread.is_alive()
    assert not crawler.is_running


def test_cancelled_before_seed_admission_raises():
    stop_event = threading.Event()
    stop_event.set()
    crawler = make_crawler(InMemoryFetcher())

    with pytest.raises(CrawlCancelledError) as exc:
        crawler.crawl(["https://a.test"], lambda r: None, stop_event=stop_event)

    assert exc.value.queued == 0
    assert not crawler.is_running


def test_skipped_links_are_logged_to_the_configured_logger():
    log = Mock()
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://a.test", links=["https://b.test/out"])
    crawler = make_crawler(fetcher, logger=log)

    crawler.crawl(["https://a.test"], lambda r: None)

    skipped = [c for c in log.debug.call_args_list if c[0][0].startswith("Skipping")]
    assert len(skipped) == 1
    assert skipped[0][0][1] == "https://b.test/out"
