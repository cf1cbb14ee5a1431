# File: tests/test_extractor.py
"""Page extraction over parsed HTML documents."""
from __future__ import annotations

import pytest

from site_mapper.crawler.link_extractor import collect_references, extract_page
from site_mapper.crawler.models import NodeKind, Page
from site_mapper.errors import DocumentParseError
from site_mapper.parser.html_parser import HtmlDocument, parse_document

ROOT = "http://www.mysite.com"


def summarize(policy, markup: str, traversed: str = ROOT) -> Page:
    return extract_page(HtmlDocument.from_markup(markup), traversed, policy.classifier(traversed))


def test_single_link_page(policy):
    page = summarize(policy, '<html><a href="/my/page"></a></html>')

    assert page.uri == ROOT
    assert list(page.anchors) == ["http://mysite.com/my/page"]
    assert page.static_links == ()
    assert page.scripts == ()
    assert page.images == ()


def test_fragment_anchors_are_ignored(policy):
    page = summarize(policy, '<html><a href="#"></a><a href="#stuff"></a><a>no href</a></html>')
    assert page.anchors == ()


def test_all_four_categories(policy):
    markup = """
    <html>
      <head>
        <link rel="stylesheet" href="/css/site.css">
        <script src="/js/app.js"></script>
        <script>inline();</script>
      </head>
      <body>
        <a href="/about">About</a>
        <img src="logo.png">
        <img src="http://cdn.example.org/x.png">
      </body>
    </html>
    """
    page = summarize(policy, markup)

    assert page.anchors == ("http://mysite.com/about",)
    assert page.static_links == ("http://mysite.com/css/site.css",)
    assert page.scripts == ("http://mysite.com/js/app.js",)
    assert page.images == ("http://www.mysite.com/logo.png",)


def test_duplicates_collapse_per_page(policy):
    markup = """
    <html><head>
      <script src="http://mysite.com/something/jquery.js"></script>
      <script src="//mysite.com/jquery.js"></script>
      <script src="./jquery.js"></script>
      <script src="http://mysite.com/jquery.js"></script>
    </head></html>
    """
    page = summarize(policy, markup, "http://www.mysite.com/something")

    assert len(page.scripts) == 3
    assert set(page.scripts) == {
        "http://mysite.com/something/jquery.js",
        "http://www.mysite.com/something/jquery.js",
        "http://mysite.com/jquery.js",
    }


def test_anchor_order_follows_document(policy):
    page = summarize(policy, '<a href="/b"></a><a href="/a"></a><a href="/b"></a>')
    assert page.anchors == ("http://mysite.com/b", "http://mysite.com/a")


class ListDocument:
    """Document stand-in: nodes are plain dicts of attributes."""

    def __init__(self, nodes):
        self.nodes = nodes

    def find_all(self, kind):
        return self.nodes.get(kind, [])

    def attribute(self, node, name):
        return node.get(name)


def test_extractor_works_with_any_document():
    seen = []

    def classify(raw):
        seen.append(raw)
        return None if raw.startswith("#") else "http://x.com/" + raw

    document = ListDocument({NodeKind.ANCHOR: [{"href": "a"}, {"href": "#b"}, {}]})
    assert collect_references(document, NodeKind.ANCHOR, classify) == ("http://x.com/a",)
    assert seen == ["a", "#b"]


def test_parse_document_accepts_html_bytes():
    document = parse_document(b'<a href="/x">x</a>', "text/html; charset=utf-8", "utf-8")
    [node] = document.find_all(NodeKind.ANCHOR)
    assert document.attribute(node, "href") == "/x"


@pytest.mark.parametrize("content_type", ["image/png", "application/pdf", "text/css"])
def test_parse_document_rejects_non_html(content_type):
    with pytest.raises(DocumentParseError):
        parse_document(b"\x89PNG", content_type)
