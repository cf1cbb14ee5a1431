"""HTML parsing for SiteMapper.

Turns fetched bytes into a document the page extractor can query.  The
extractor only needs two capabilities, so :class:`HtmlDocument` exposes just
those:

* ``find_all(kind)`` - every node of a :class:`~site_mapper.crawler.models.NodeKind`;
* ``attribute(node, name)`` - the attribute value as a string, or ``None``.

Any object with the same two methods works as a document (see
:class:`Document`), which keeps the extractor testable without markup.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Iterable, List, Optional, Protocol

from bs4 import BeautifulSoup, ParserRejectedMarkup
from bs4.element import Tag

from site_mapper.crawler.models import NodeKind
from site_mapper.errors import DocumentParseError

__all__: Sequence[str] = ("Document", "HtmlDocument", "parse_document", "HTML_CONTENT_TYPES")

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml", "application/xml", "text/xml")


class Document(Protocol):
    def find_all(self, kind: NodeKind) -> Iterable[Any]: ...

    def attribute(self, node: Any, name: str) -> Optional[str]: ...


class HtmlDocument:
    """BeautifulSoup-backed :class:`Document`."""

    def __init__(self, soup: BeautifulSoup) -> None:
        self.soup = soup

    def find_all(self, kind: NodeKind) -> List[Tag]:
        return [tag for tag in self.soup.find_all(kind.tag) if isinstance(tag, Tag)]

    def attribute(self, node: Tag, name: str) -> Optional[str]:
        value = node.get(name)
        if isinstance(value, list):
            # multi-valued attributes come back as lists
            return " ".join(value)
        return value

    @classmethod
    def from_markup(cls, markup: bytes | str, encoding: Optional[str] = None) -> HtmlDocument:
        if isinstance(markup, bytes):
            return cls(BeautifulSoup(markup, "html.parser", from_encoding=encoding))
        return cls(BeautifulSoup(markup, "html.parser"))


def parse_document(
    body: bytes | str,
    content_type: Optional[str] = None,
    encoding: Optional[str] = None,
) -> HtmlDocument:
    """Parse fetched content into an :class:`HtmlDocument`.

    Bytes are decoded by BeautifulSoup, honouring ``encoding`` when the server
    declared one.  Raises :class:`DocumentParseError` for non-HTML content
    types and markup the parser refuses.
    """
    if content_type is not None:
        mime = content_type.split(";", 1)[0].strip().lower()
        if mime and mime not in HTML_CONTENT_TYPES:
            raise DocumentParseError(f"unsupported content type {mime!r}")
    try:
        return HtmlDocument.from_markup(body, encoding)
    except ParserRejectedMarkup as exc:
        raise DocumentParseError(str(exc)) from exc
