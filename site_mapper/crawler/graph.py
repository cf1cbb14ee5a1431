"""
Crawl state: the visit graph and the discovery queue.

Both are owned by :class:`~site_mapper.crawler.scheduler.CrawlScheduler`,
which is their only writer.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from site_mapper.crawler.models import Page
from site_mapper.errors import GraphInvariantError

__all__ = ("VisitGraph", "DiscoveryQueue")

logger = logging.getLogger("SiteMapper")


class VisitGraph:
    """Canonical URI -> :class:`Page`, or ``None`` for a permanently failed visit.

    A URI is completed at most once and is claimed at most once at a time;
    violations raise :class:`GraphInvariantError`.
    """

    def __init__(self) -> None:
        self.completed: Dict[str, Optional[Page]] = {}
        self.claimed: Set[str] = set()
        self.attempted_variants: Set[str] = set()
        self.answered_variants: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self.completed)

    def __contains__(self, uri: object) -> bool:
        return uri in self.completed

    def __iter__(self) -> Iterator[str]:
        return iter(self.completed)

    def is_known(self, uri: str) -> bool:
        """Completed or currently claimed."""
        return uri in self.completed or uri in self.claimed

    def claim(self, uri: str) -> None:
        if uri in self.completed:
            raise GraphInvariantError(f"{uri} is already completed")
        if uri in self.claimed:
            raise GraphInvariantError(f"{uri} is already claimed")
        self.claimed.add(uri)

    def release(self, uri: str) -> None:
        self.claimed.discard(uri)

    def _complete(self, uri: str, page: Optional[Page]) -> None:
        if uri in self.completed:
            raise GraphInvariantError(f"{uri} completed twice")
        self.release(uri)
        self.completed[uri] = page

    def record_success(self, uri: str, page: Page, variant: Optional[str] = None) -> None:
        """Complete ``uri`` with ``page``; ``variant`` is the spelling that answered."""
        self._complete(uri, page)
        if variant is not None:
            self.answered_variants.setdefault(variant, uri)

    def record_failure(self, uri: str) -> None:
        self._complete(uri, None)

    def mark_attempted(self, variant: str) -> None:
        self.attempted_variants.add(variant)

    def was_attempted(self, variant: str) -> bool:
        return variant in self.attempted_variants

    def answered_by(self, variants: Iterable[str]) -> Optional[Tuple[str, str]]:
        """First of ``variants`` that already returned a page, with the URI it was stored under."""
        for variant in variants:
            owner = self.answered_variants.get(variant)
            if owner is not None:
                return variant, owner
        return None

    def get(self, uri: str) -> Optional[Page]:
        return self.completed.get(uri)

    def pages(self) -> List[Page]:
        return [page for page in self.completed.values() if page is not None]

    def failures(self) -> List[str]:
        return [uri for uri, page in self.completed.items() if page is None]


class DiscoveryQueue:
    """FIFO of URIs awaiting dispatch with set semantics (re-adding is a no-op)."""

    def __init__(self) -> None:
        self._items: Dict[str, None] = {}

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __contains__(self, uri: object) -> bool:
        return uri in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def add(self, uri: str) -> bool:
        """Append ``uri``; returns ``False`` when it was already queued."""
        if uri in self._items:
            return False
        self._items[uri] = None
        return True

    def pop(self) -> str:
        """Remove and return the earliest queued URI."""
        if not self._items:
            raise IndexError("pop from an empty DiscoveryQueue")
        uri = next(iter(self._items))
        del self._items[uri]
        return uri

    def clear(self) -> None:
        dropped = len(self._items)
        self._items.clear()
        if dropped:
            logger.debug("Discovery queue cleared, %d URIs dropped", dropped)
