# File: site_mapper/engine.py
"""site_mapper.engine: wires config, fetcher, dispatcher and scheduler into one crawl."""

from __future__ import annotations

import asyncio
from typing import Optional

from site_mapper.config import CrawlerConfig
from site_mapper.crawler.dispatcher import FetchDispatcher
from site_mapper.crawler.fetcher import Fetcher, HttpFetcher
from site_mapper.crawler.graph import VisitGraph
from site_mapper.crawler.scheduler import CrawlScheduler, VisitHook
from site_mapper.crawler.urls import CrawlPolicy, DomainPolicy
from site_mapper.logger import logger

__all__ = ["Engine", "start_crawl"]


class Engine:
    """Facade for the CLI and tests: build the collaborators and run one crawl."""

    def __init__(
        self,
        config: CrawlerConfig,
        *,
        policy: Optional[CrawlPolicy] = None,
        on_visit: Optional[VisitHook] = None,
    ) -> None:
        self.config = config
        self.policy = policy or DomainPolicy(config.domain, protocol=config.protocol)
        self.on_visit = on_visit

    def build_scheduler(self, fetcher: Fetcher) -> CrawlScheduler:
        return CrawlScheduler(
            FetchDispatcher(fetcher, self.policy),
            self.policy,
            max_concurrency=self.config.max_concurrency,
            max_pages=self.config.max_pages,
            on_visit=self.on_visit,
        )

    async def crawl(self, seed: Optional[str] = None, fetcher: Optional[Fetcher] = None) -> VisitGraph:
        """Crawl from ``seed`` (default: the config's seed URL) until drained.

        With ``crawl_timeout`` set, outstanding work is cancelled at the deadline
        and the partial graph is returned.
        """
        seed = seed or self.config.seed_url
        if fetcher is None:
            async with HttpFetcher(self.config.timeout, self.config.user_agent) as http:
                return await self._run(seed, http)
        return await self._run(seed, fetcher)

    async def _run(self, seed: str, fetcher: Fetcher) -> VisitGraph:
        scheduler = self.build_scheduler(fetcher)
        scheduler.start(seed)
        if self.config.crawl_timeout is None:
            return await scheduler.drain()
        try:
            return await asyncio.wait_for(scheduler.drain(), timeout=self.config.crawl_timeout)
        except asyncio.TimeoutError:
            logger.warning("Crawl did not finish within %s seconds", self.config.crawl_timeout)
            await scheduler.abort()
            return scheduler.graph


async def start_crawl(config: CrawlerConfig, seed: Optional[str] = None) -> VisitGraph:
    """Crawl with the default policy and the aiohttp fetcher."""
    logger.info("Mapping %s", config.domain)
    return await Engine(config).crawl(seed)
