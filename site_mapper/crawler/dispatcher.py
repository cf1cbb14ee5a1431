"""
Fetch dispatch: try one variant of a :class:`FallbackRequest` and classify the outcome.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from site_mapper.crawler.link_extractor import extract_page
from site_mapper.crawler.models import (
    DispatchOutcome,
    Exhausted,
    FallbackRequest,
    Rejected,
    Retry,
    Success,
)
from site_mapper.crawler.fetcher import Fetcher
from site_mapper.crawler.urls import CrawlPolicy
from site_mapper.errors import DocumentParseError
from site_mapper.parser.html_parser import Document, parse_document

__all__ = ("FetchDispatcher",)

ParseFn = Callable[..., Document]


class FetchDispatcher:
    """Stateless: safe to run many :meth:`dispatch` calls concurrently."""

    def __init__(
        self,
        fetcher: Fetcher,
        policy: CrawlPolicy,
        parse: Optional[ParseFn] = None,
    ) -> None:
        self.fetcher = fetcher
        self.policy = policy
        self.parse = parse or parse_document
        self.logger = logging.getLogger("SiteMapper")

    async def dispatch(self, request: FallbackRequest) -> DispatchOutcome:
        """
        Fetch ``request.head``.

        * transport failure -> :class:`Retry` with the remaining variants, or
          :class:`Exhausted` when none remain;
        * content that does not parse -> :class:`Rejected` (siblings are not tried);
        * otherwise -> :class:`Success` with the extracted page, keyed by
          ``request.uri`` but resolved against the variant that answered.
        """
        variant = request.head
        self.logger.debug("GET %s (for %s, %d left)", variant, request.uri, len(request.variants) - 1)
        result = await self.fetcher.fetch(variant)
        if not result.ok:
            reason = f"{variant}: {result.describe()}"
            remaining = request.tail()
            if remaining is None:
                return Exhausted(reason)
            self.logger.debug("Falling back for %s after %s", request.uri, reason)
            return Retry(remaining, reason)
        try:
            document = self.parse(result.body or b"", result.content_type, result.encoding)
        except DocumentParseError as exc:
            return Rejected(f"{variant}: {exc}")
        page = extract_page(document, request.uri, self.policy.classifier(variant))
        return Success(page, variant)
