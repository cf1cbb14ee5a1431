# === FILE: site_mapper/crawler/scheduler.py ===
"""
Crawl scheduler: discovery queue, concurrency quota and visit bookkeeping.

Dispatches run as asyncio tasks, but their results are folded into the
:class:`VisitGraph` and :class:`DiscoveryQueue` only by :meth:`CrawlScheduler.drain`,
one completion at a time.  That loop is the single writer of crawl state, so
two pages linking to the same URI can never both enqueue it.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import replace
from enum import Enum
from typing import Callable, Dict, Optional, Sequence, Set

from site_mapper.crawler.dispatcher import FetchDispatcher
from site_mapper.crawler.graph import DiscoveryQueue, VisitGraph
from site_mapper.crawler.models import (
    DispatchOutcome,
    Exhausted,
    FallbackRequest,
    Rejected,
    Retry,
    Success,
    VisitEvent,
)
from site_mapper.crawler.urls import PROTOCOLS, CrawlPolicy
from site_mapper.errors import SeedResolutionError, SiteMapperError

__all__ = ("MAX_CONCURRENCY", "CrawlState", "CrawlScheduler")

MAX_CONCURRENCY = 6

VisitHook = Callable[[VisitEvent], None]


class CrawlState(str, Enum):
    RUNNING = "running"
    DRAINED = "drained"


class CrawlScheduler:
    """Breadth-first, quota-bounded crawl over the URIs a policy accepts."""

    def __init__(
        self,
        dispatcher: FetchDispatcher,
        policy: CrawlPolicy,
        *,
        max_concurrency: int = MAX_CONCURRENCY,
        max_pages: Optional[int] = None,
        on_visit: Optional[VisitHook] = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        if max_pages is not None and max_pages < 1:
            raise ValueError("max_pages must be >= 1")
        self.dispatcher = dispatcher
        self.policy = policy
        self.max_concurrency = max_concurrency
        self.max_pages = max_pages
        self.on_visit = on_visit
        self.graph = VisitGraph()
        self.queue = DiscoveryQueue()
        self.dispatch_count = 0
        self._started: Optional[float] = None
        self._in_flight: Dict[asyncio.Task[DispatchOutcome], FallbackRequest] = {}
        self._waiting: Set[str] = set()
        self.logger = logging.getLogger("SiteMapper")

    # ------------------------------------------------------------------ #
    # State                                                              #
    # ------------------------------------------------------------------ #

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    @property
    def state(self) -> CrawlState:
        if self._in_flight or self._waiting or (self.queue and not self._cap_reached()):
            return CrawlState.RUNNING
        return CrawlState.DRAINED

    def _cap_reached(self) -> bool:
        if self.max_pages is None:
            return False
        return len(self.graph) + len(self.graph.claimed) >= self.max_pages

    # ------------------------------------------------------------------ #
    # Operations                                                         #
    # ------------------------------------------------------------------ #

    def start(self, seed: str) -> str:
        """
        Normalize ``seed``, enqueue it and fill the quota.

        Must be called from a running event loop.  Raises
        :class:`SeedResolutionError` before anything is dispatched when the
        seed cannot be normalized.
        """
        uri = self._resolve_seed(seed)
        self.logger.info("Crawl started at %s (quota %d)", uri, self.max_concurrency)
        self._started = time.monotonic()
        if not self.graph.is_known(uri):
            self.queue.add(uri)
        self.fill_quota()
        return uri

    def _resolve_seed(self, seed: str) -> str:
        raw = seed.strip()
        if not raw:
            raise SeedResolutionError("empty seed URL")
        scheme, sep, _ = raw.partition("://")
        if sep and scheme.lower() + "://" not in PROTOCOLS:
            raise SeedResolutionError(f"unsupported seed protocol in {seed!r}")
        try:
            uri = self.policy.normalize(raw)
        except SiteMapperError as exc:
            raise SeedResolutionError(f"cannot resolve seed {seed!r}: {exc}") from exc
        _, _, rest = uri.partition("://")
        if not rest.split("/", 1)[0]:
            raise SeedResolutionError(f"seed {seed!r} has no host")
        return uri

    def fill_quota(self) -> None:
        """Dispatch queued URIs until the quota (or the page cap) is used up."""
        while self.queue and len(self._in_flight) < self.max_concurrency and not self._cap_reached():
            uri = self.queue.pop()
            self.graph.claim(uri)
            self._advance(uri, self.policy.candidate_variants(uri), "all variants already attempted")

    def _advance(self, uri: str, variants: Sequence[str], reason: str) -> None:
        """
        Move a claimed ``uri`` forward: reuse a page another URI already got
        from one of its spellings, else dispatch the next untried variant,
        else wait for a spelling still in flight, else fail with ``reason``.
        """
        if self._adopt(uri):
            return
        request = self._fallback_request(uri, variants)
        if request is not None:
            self._dispatch(request)
        elif self._pending(self.policy.candidate_variants(uri)):
            self.logger.debug("Waiting on an in-flight spelling of %s", uri)
            self._waiting.add(uri)
        else:
            self._fail(uri, reason)

    def _adopt(self, uri: str) -> bool:
        answered = self.graph.answered_by(self.policy.candidate_variants(uri))
        if answered is None:
            return False
        variant, owner = answered
        page = self.graph.get(owner)
        self.graph.record_success(uri, replace(page, uri=uri))
        self.logger.info("OK %s (same page as %s)", uri, owner)
        self._notify(VisitEvent(uri, True, fetched_url=variant))
        return True

    def _pending(self, variants: Sequence[str]) -> bool:
        heads = {request.head for request in self._in_flight.values()}
        return any(variant in heads for variant in variants)

    def _settle_waiting(self) -> None:
        for uri in list(self._waiting):
            if self._adopt(uri):
                self._waiting.discard(uri)
            elif not self._pending(self.policy.candidate_variants(uri)):
                self._waiting.discard(uri)
                self._fail(uri, "all variants already attempted")

    def _fallback_request(self, uri: str, variants: Sequence[str]) -> Optional[FallbackRequest]:
        fresh = tuple(v for v in variants if not self.graph.was_attempted(v))
        return FallbackRequest(uri, fresh) if fresh else None

    def _dispatch(self, request: FallbackRequest) -> None:
        self.graph.mark_attempted(request.head)
        self.dispatch_count += 1
        task = asyncio.create_task(self.dispatcher.dispatch(request))
        self._in_flight[task] = request

    def on_completion(self, request: FallbackRequest, outcome: DispatchOutcome) -> None:
        """Fold one dispatch outcome into the crawl state."""
        uri = request.uri
        if isinstance(outcome, Success):
            page = outcome.page
            self.graph.record_success(uri, page, outcome.fetched_url)
            fresh = 0
            for anchor in page.anchors:
                if self.graph.is_known(anchor) or anchor in self.queue:
                    continue
                self.queue.add(anchor)
                fresh += 1
            self.logger.info("OK %s (%d links, %d new)", uri, len(page.anchors), fresh)
            self._notify(VisitEvent(uri, True, fetched_url=outcome.fetched_url))
        elif isinstance(outcome, Retry):
            self._advance(uri, outcome.request.variants, outcome.reason)
        elif isinstance(outcome, (Exhausted, Rejected)):
            self._fail(uri, outcome.reason)
        else:
            raise TypeError(f"unknown dispatch outcome {outcome!r}")
        self._settle_waiting()
        self.fill_quota()

    def _fail(self, uri: str, reason: str) -> None:
        self.graph.record_failure(uri)
        self.logger.warning("Failed %s: %s", uri, reason)
        self._notify(VisitEvent(uri, False, reason=reason))

    def _notify(self, event: VisitEvent) -> None:
        if self.on_visit is None:
            return
        try:
            self.on_visit(event)
        except Exception:
            self.logger.exception("on_visit hook failed for %s", event.uri)

    async def drain(self) -> VisitGraph:
        """Process completions until nothing is queued or in flight."""
        while self._in_flight:
            done, _ = await asyncio.wait(self._in_flight, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                request = self._in_flight.pop(task)
                try:
                    outcome = task.result()
                except Exception as exc:
                    self.logger.exception("Dispatch for %s crashed", request.uri)
                    outcome = Exhausted(f"{type(exc).__name__}: {exc}")
                self.on_completion(request, outcome)
        self._log_summary()
        return self.graph

    async def crawl(self, seed: str) -> VisitGraph:
        self.start(seed)
        return await self.drain()

    async def abort(self) -> None:
        """Cancel outstanding dispatches and drop the queue; the crawl is drained afterwards."""
        self.queue.clear()
        tasks = list(self._in_flight)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        for task in tasks:
            request = self._in_flight.pop(task)
            self.graph.release(request.uri)
        for uri in self._waiting:
            self.graph.release(uri)
        self._waiting.clear()
        if tasks:
            self.logger.warning("Crawl aborted with %d requests in flight", len(tasks))

    def _log_summary(self) -> None:
        duration = time.monotonic() - self._started if self._started is not None else 0.0
        self.logger.info(
            "Crawl drained: %d pages, %d failed, %d requests in %.2f s",
            len(self.graph.pages()),
            len(self.graph.failures()),
            self.dispatch_count,
            duration,
        )
        if self.queue:
            self.logger.info("Page cap reached, %d URIs left unvisited", len(self.queue))
