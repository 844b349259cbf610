"""
Tests for run.py main() with an injected container.
"""
from unittest.mock import Mock

from dependency_injector import providers

from run import main
from sitecrawl.container import Container
from sitecrawl.domain.crawl_result import CrawlResult
from sitecrawl.domain.crawler_stats import CrawlerStats
from sitecrawl.services.fetcher import InMemoryFetcher


def _container_with(fetcher):
    container = Container()
    container.http_fetcher.override(providers.Object(fetcher))
    container.crawler_options.add_kwargs(idle_poll_interval=0.02)
    return container


def test_main_without_seeds_returns_2(capsys):
    assert main([], container=_container_with(InMemoryFetcher())) == 2
    assert "No seed URLs" in capsys.readouterr().err


def test_main_crawls_and_prints_results(capsys):
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://a.test", html="<title>Home</title><a href='/missing'>m</a>")
    container = _container_with(fetcher)

    code = main(["https://a.test", "--workers", "2"], container=container)

    out = capsys.readouterr().out
    assert code == 0
    assert "OK https://a.test - Home" in out
    assert "FAIL https://a.test/missing:" in out
    assert "Processed 2 url(s): 1 succeeded, 1 failed" in out


def test_main_reads_job_file(tmp_path, capsys):
    job = tmp_path / "job.yml"
    job.write_text("seeds:\n  - https://a.test\nfollow: none\ncache: true\n")
    fetcher = InMemoryFetcher()
    fetcher.add_response("https://a.test", html="<title>Job</title><a href='/x'>x</a>")
    container = _container_with(fetcher)

    code = main(["--config", str(job)], container=container)

    out = capsys.readouterr().out
    assert code == 0
    assert "OK https://a.test - Job" in out
    assert "Processed 1 url(s)" in out


def test_main_missing_job_file_returns_2(tmp_path):
    assert main(["--config", str(tmp_path / "nope.yml")], container=_container_with(InMemoryFetcher())) == 2


def test_main_applies_cli_overrides():
    captured = {}
    fake_crawler = Mock()
    fake_crawler.get_stats.return_value = CrawlerStats()

    def fake_factory(options):
        captured["options"] = options
        return fake_crawler

    container = Container()
    container.crawler.override(providers.Callable(fake_factory))

    code = main(
        ["https://a.test", "--workers", "5", "--max", "10", "--delay", "0.5", "--follow", "any", "--allow-http", "--keep-query", "--progress"],
        container=container,
    )

    opts = captured["options"]
    assert code == 0
    assert opts.workers == 5
    assert opts.max_urls == 10
    assert opts.request_delay == 0.5
    assert opts.follow_behavior == "any"
    assert opts.allow_http is True
    assert opts.preserve_query_params is True
    assert opts.show_progress is True
    fake_crawler.crawl.assert_called_once()
    assert fake_crawler.crawl.call_args.args[0] == ["https://a.test"]


def test_main_prints_fail_line_for_errors(capsys):
    fake_crawler = Mock()
    fake_crawler.get_stats.return_value = CrawlerStats()
    fake_crawler.crawl.side_effect = lambda seeds, callback: callback(CrawlResult(url="https://a.test", error=RuntimeError("boom")))
    container = Container()
    container.crawler.override(providers.Object(fake_crawler))

    main(["https://a.test"], container=container)

    assert "FAIL https://a.test: boom" in capsys.readouterr().out
