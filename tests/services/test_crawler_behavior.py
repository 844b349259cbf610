import threading

from sitecrawl.domain.config import CrawlerOptions
from sitecrawl.exceptions import NoFetcherError
from sitecrawl.services.crawler import Crawler
from sitecrawl.services.fetcher import InMemoryFetcher
from sitecrawl.services.page_cache import InMemoryPageCache


def make_crawler(fetcher=None, **kwargs):
    kwargs.setdefault("idle_poll_interval", 0.02)
    return Crawler(CrawlerOptions(default_fetcher=fetcher, **kwargs))


class Collector:
    def __init__(self):
        self._lock = threading.Lock()
        self.results = []

    def __call__(self, result):
        with self._lock:
            self.results.append(result)

    def by_url(self):
        return {r.url: r for r in self.results}


def test_same_domain_crawl_never_fetches_external_links():
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://a.test", links=["http://a.test/x", "http://b.test/y"])
    fetcher.add_response("https://a.test/x")
    crawler = make_crawler(fetcher, workers=2, follow_behavior="same-domain")
    collector = Collector()

    crawler.crawl(["http://a.test/"], collector)

    assert crawler.get_stats().processed == 2
    assert fetcher.call_count("https://b.test/y") == 0
    assert set(collector.by_url()) == {"https://a.test", "https://a.test/x"}
    # callback sees every discovered link, before follow filtering
    assert collector.by_url()["https://a.test"].links == ["https://a.test/x", "https://b.test/y"]


def test_address_seeded_and_discovered_is_processed_once():
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://a.test", links=["/page"])
    fetcher.add_response("https://a.test/other", links=["https://a.test/page"])
    fetcher.add_response("https://a.test/page")
    crawler = make_crawler(fetcher, workers=4)
    collector = Collector()

    crawler.crawl(["https://a.test/page", "https://a.test", "https://a.test/other"], collector)

    assert fetcher.call_count("https://a.test/page") == 1
    assert [r.url for r in collector.results].count("https://a.test/page") == 1
    assert crawler.get_stats().processed == 3


def test_cache_hit_skips_fetch_but_still_extracts_links():
    cache = InMemoryPageCache()
    # keyed by the canonical form of the "http://a.test/" seed
    cache.set("https://a.test", b'<html><body><a href="/x">x</a></body></html>')
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://a.test/x")
    crawler = make_crawler(fetcher, cache=cache)
    collector = Collector()

    crawler.crawl(["http://a.test/"], collector)

    assert fetcher.call_count("https://a.test") == 0
    result = collector.by_url()["https://a.test"]
    assert result.ok
    assert result.links == ["https://a.test/x"]
    assert fetcher.call_count("https://a.test/x") == 1


def test_no_fetcher_configured_fails_every_url():
    crawler = make_crawler(None)
    collector = Collector()

    crawler.crawl(["https://a.test", "https://b.test"], collector)

    stats = crawler.get_stats()
    assert stats.processed == 2
    assert stats.failed == stats.processed
    assert stats.succeeded == 0
    assert all(isinstance(r.error, NoFetcherError) for r in collector.results)
    assert "no fetcher configured for domain" in str(collector.results[0].error)


def test_max_urls_stops_admitting_new_urls():
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://a.test", links=[f"/{i}" for i in range(10)])
    for i in range(10):
        fetcher.add_response(f"https://a.test/{i}")
    crawler = make_crawler(fetcher, workers=1, max_urls=3)

    crawler.crawl(["https://a.test"], Collector())

    assert crawler.get_stats().processed == 3


def test_stats_are_consistent_after_mixed_outcomes():
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://a.test", links=["/ok", "/broken", "/missing"])
    fetcher.add_response("https://a.test/ok")
    fetcher.add_error("https://a.test/broken", RuntimeError("boom"))
    crawler = make_crawler(fetcher, workers=3)
    collector = Collector()

    crawler.crawl("https://a.test", collector)

    stats = crawler.get_stats().snapshot()
    assert stats.processed == 4
    assert stats.succeeded == 2
    assert stats.failed == 2
    assert stats.processed >= stats.succeeded + stats.failed
    assert str(collector.by_url()["https://a.test/broken"].error) == "boom"


def test_follow_none_only_processes_seeds():
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://a.test", links=["/x", "/y"])
    crawler = make_crawler(fetcher, follow_behavior="none")

    crawler.crawl(["https://a.test"], Collector())

    assert crawler.get_stats().processed == 1
    assert fetcher.calls == ["https://a.test"]


def test_follow_any_crosses_hosts():
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://a.test", links=["https://b.test/y"])
    fetcher.add_response("https://b.test/y")
    crawler = make_crawler(fetcher, follow_behavior="any")

    crawler.crawl(["https://a.test"], Collector())

    assert fetcher.call_count("https://b.test/y") == 1


def test_related_subdomains_follows_sibling_hosts():
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://www.example.com", links=["https://blog.example.com/post", "https://example.org/"])
    fetcher.add_response("https://blog.example.com/post")
    crawler = make_crawler(fetcher, follow_behavior="related-subdomains")

    crawler.crawl(["https://www.example.com"], Collector())

    assert fetcher.call_count("https://blog.example.com/post") == 1
    assert fetcher.call_count("https://example.org") == 0


def test_related_subdomains_follows_sibling_hosts_on_unlisted_tld():
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://www.a.test", links=["https://blog.a.test/p", "https://b.test/q"])
    fetcher.add_response("https://blog.a.test/p")
    crawler = make_crawler(fetcher, follow_behavior="related-subdomains")

    crawler.crawl(["https://www.a.test"], Collector())

    assert fetcher.call_count("https://blog.a.test/p") == 1
    assert fetcher.call_count("https://b.test/q") == 0


def test_cache_entries_under_raw_seed_form_are_not_hits():
    cache = InMemoryPageCache()
    cache.set("http://a.test/", b"<p>stale</p>")
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://a.test", html="<p>fresh</p>")
    crawler = make_crawler(fetcher, cache=cache)

    crawler.crawl(["http://a.test/"], Collector())

    assert fetcher.call_count("https://a.test") == 1
    assert cache.get("https://a.test") == b"<p>fresh</p>"
