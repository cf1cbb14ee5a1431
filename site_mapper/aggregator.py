# File: site_mapper/aggregator.py
"""site_mapper.aggregator: turns a finished VisitGraph into a sitemap report."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, TypedDict

from site_mapper.crawler.graph import VisitGraph


class PageInfo(TypedDict):
    """One successfully visited page and its outbound references."""

    uri: str
    anchors: List[str]
    static_links: List[str]
    scripts: List[str]
    images: List[str]


class AssetInfo(TypedDict):
    """Static resources referenced anywhere on the site, by kind."""

    static_links: List[str]
    scripts: List[str]
    images: List[str]


@dataclass(slots=True)
class SiteReport:
    """Read-out of one crawl: visited pages, failed URIs, static assets."""

    domain: str = ""
    pages: List[PageInfo] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    assets: AssetInfo = field(
        default_factory=lambda: AssetInfo(static_links=[], scripts=[], images=[])
    )

    @property
    def counts(self) -> Dict[str, int]:
        return {
            "pages": len(self.pages),
            "failed": len(self.failed),
            "static_links": len(self.assets["static_links"]),
            "scripts": len(self.assets["scripts"]),
            "images": len(self.assets["images"]),
        }

    def to_dict(self) -> Dict[str, object]:
        data = asdict(self)
        data["counts"] = self.counts
        return data

    def json(self, *, pretty: bool = False) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2 if pretty else None)


def _aggregate_pages(graph: VisitGraph) -> List[PageInfo]:
    pages: List[PageInfo] = []
    for page in graph.pages():
        pages.append(
            PageInfo(
                uri=page.uri,
                anchors=list(page.anchors),
                static_links=list(page.static_links),
                scripts=list(page.scripts),
                images=list(page.images),
            )
        )
    return pages


def _aggregate_assets(graph: VisitGraph) -> AssetInfo:
    """Distinct assets in first-seen order."""
    static_links: Dict[str, None] = {}
    scripts: Dict[str, None] = {}
    images: Dict[str, None] = {}
    for page in graph.pages():
        static_links.update(dict.fromkeys(page.static_links))
        scripts.update(dict.fromkeys(page.scripts))
        images.update(dict.fromkeys(page.images))
    return AssetInfo(static_links=list(static_links), scripts=list(scripts), images=list(images))


def aggregate_graph(graph: VisitGraph, domain: Optional[str] = None) -> SiteReport:
    """Build a SiteReport from a drained VisitGraph."""
    return SiteReport(
        domain=domain or "",
        pages=_aggregate_pages(graph),
        failed=graph.failures(),
        assets=_aggregate_assets(graph),
    )
