# File: tests/conftest.py
import asyncio
import logging
from collections import Counter
from typing import Dict, List, Optional, Union

import pytest

from site_mapper.crawler.dispatcher import FetchDispatcher
from site_mapper.crawler.models import FailureReason, FetchResult
from site_mapper.crawler.scheduler import CrawlScheduler
from site_mapper.crawler.urls import DomainPolicy
from site_mapper.logger import LOGGER_NAME

BASE = "mysite.com"


def pytest_configure(config):
    """Register custom markers so that `--strict-markers` does not fail."""
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )


Route = Union[str, int, FailureReason, FetchResult]


class FakeFetcher:
    """
    In-memory site: maps exact URLs to HTML (str), an HTTP status (int),
    a transport failure (FailureReason) or a ready FetchResult.
    Unknown URLs answer 404. ``delays`` overrides ``delay`` per URL.
    Records every call and the peak concurrency.
    """

    def __init__(
        self,
        routes: Optional[Dict[str, Route]] = None,
        delay: float = 0.0,
        delays: Optional[Dict[str, float]] = None,
    ) -> None:
        self.routes: Dict[str, Route] = dict(routes or {})
        self.delay = delay
        self.delays: Dict[str, float] = dict(delays or {})
        self.calls: List[str] = []
        self.active = 0
        self.peak = 0

    @property
    def call_counts(self) -> Counter:
        return Counter(self.calls)

    async def fetch(self, url: str) -> FetchResult:
        self.calls.append(url)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delays.get(url, self.delay))
            route = self.routes.get(url, 404)
            if isinstance(route, FetchResult):
                return route
            if isinstance(route, FailureReason):
                return FetchResult.failure(url, route)
            if isinstance(route, int):
                return FetchResult.failure(url, FailureReason.HTTP_STATUS, status_code=route)
            return FetchResult.success(url, route.encode("utf-8"), content_type="text/html")
        finally:
            self.active -= 1


def links(*hrefs: str) -> str:
    """HTML page with one anchor per href."""
    body = "".join(f'<a href="{href}">{href}</a>' for href in hrefs)
    return f"<html><body>{body}</body></html>"


@pytest.fixture()
def policy() -> DomainPolicy:
    return DomainPolicy(BASE)


@pytest.fixture()
def make_scheduler(policy):
    """Factory: scheduler over a FakeFetcher built from ``routes``."""

    def _make(routes: Dict[str, Route], *, delay: float = 0.0, delays=None, **kwargs):
        fetcher = FakeFetcher(routes, delay=delay, delays=delays)
        scheduler = CrawlScheduler(FetchDispatcher(fetcher, policy), policy, **kwargs)
        return scheduler, fetcher

    return _make


@pytest.fixture(autouse=True)
def reset_logger():
    """CLI tests bind handlers to CliRunner streams; drop them afterwards."""
    yield
    lg = logging.getLogger(LOGGER_NAME)
    for handler in list(lg.handlers):
        lg.removeHandler(handler)
        handler.close()
