import logging
import time
from typing import Callable, Optional

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, stop_any, wait_exponential

from sitecrawl.domain.config import RetryOptions
from sitecrawl.domain.http_response import FetchRequest, HttpResponse

logger = logging.getLogger(__name__)


class RetryingFetcher:
    """Wrap a fetcher with exponential-backoff retries.

    The first retry waits `initial_backoff` seconds, doubling up to
    `max_backoff`, for at most `max_attempts` attempts in total. Retries
    stop as soon as the crawl's stop event is set; the last error is
    re-raised unchanged.
    """

    def __init__(
        self,
        fetcher,
        options: RetryOptions,
        *,
        sleep: Optional[Callable[[float], None]] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.fetcher = fetcher
        self.options = options.effective()
        self._sleep = sleep
        self._logger = log or logger

    def _sleeper(self, stop_event) -> Callable[[float], None]:
        if self._sleep is not None:
            return self._sleep
        if stop_event is not None and hasattr(stop_event, "wait"):
            # wake up early when the crawl is cancelled
            return lambda seconds: stop_event.wait(seconds)
        return time.sleep

    def fetch(self, request: FetchRequest, stop_event=None) -> HttpResponse:
        url = request.url

        def _cancelled(retry_state) -> bool:
            return stop_event is not None and stop_event.is_set()

        def _log_retry(retry_state) -> None:
            exc = retry_state.outcome.exception() if retry_state.outcome else None
            delay = retry_state.next_action.sleep if retry_state.next_action else 0
            self._logger.warning(
                "Retrying fetch of %s (attempt %s failed: %s); next try in %.2fs",
                url,
                retry_state.attempt_number,
                exc,
                delay,
            )

        retrying = Retrying(
            stop=stop_any(stop_after_attempt(self.options.max_attempts), _cancelled),
            wait=wait_exponential(
                multiplier=self.options.initial_backoff,
                min=self.options.initial_backoff,
                max=self.options.max_backoff,
            ),
            retry=retry_if_exception_type(Exception),
            before_sleep=_log_retry,
            sleep=self._sleeper(stop_event),
            reraise=True,
        )
        return retrying(self.fetcher.fetch, request, stop_event=stop_event)
