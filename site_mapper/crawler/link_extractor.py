"""
Reference extraction for SiteMapper: document -> :class:`Page`.
"""
from __future__ import annotations

from typing import Dict, Tuple

from site_mapper.crawler.models import NodeKind, Page
from site_mapper.crawler.urls import Classifier
from site_mapper.parser.html_parser import Document


def collect_references(document: Document, kind: NodeKind, classify: Classifier) -> Tuple[str, ...]:
    """
    Canonical references carried by every ``kind`` node of ``document``.

    Rejected values are dropped; duplicates collapse to their first occurrence.
    """
    found: Dict[str, None] = {}
    for node in document.find_all(kind):
        raw = document.attribute(node, kind.attribute)
        if raw is None:
            continue
        uri = classify(raw)
        if uri is not None:
            found.setdefault(uri)
    return tuple(found)


def extract_page(document: Document, traversed_uri: str, classify: Classifier) -> Page:
    """
    Summarize ``document`` as a :class:`Page` identified by ``traversed_uri``.

    ``classify`` is normally ``policy.classifier(traversed_uri)``.
    """
    return Page(
        uri=traversed_uri,
        anchors=collect_references(document, NodeKind.ANCHOR, classify),
        static_links=collect_references(document, NodeKind.STATIC_LINK, classify),
        scripts=collect_references(document, NodeKind.SCRIPT, classify),
        images=collect_references(document, NodeKind.IMAGE, classify),
    )
