# File: tests/test_graph.py
"""VisitGraph and DiscoveryQueue bookkeeping."""
import pytest

from site_mapper.crawler.graph import DiscoveryQueue, VisitGraph
from site_mapper.crawler.models import Page
from site_mapper.errors import GraphInvariantError


def test_claim_then_success_releases_claim():
    graph = VisitGraph()
    graph.claim("http://a.com")
    assert graph.is_known("http://a.com")
    assert "http://a.com" not in graph

    graph.record_success("http://a.com", Page("http://a.com"))

    assert "http://a.com" in graph
    assert graph.claimed == set()
    assert graph.get("http://a.com") == Page("http://a.com")


def test_failure_is_recorded_as_sentinel():
    graph = VisitGraph()
    graph.claim("http://a.com/x")
    graph.record_failure("http://a.com/x")

    assert graph.completed == {"http://a.com/x": None}
    assert graph.failures() == ["http://a.com/x"]
    assert graph.pages() == []


def test_double_claim_is_rejected():
    graph = VisitGraph()
    graph.claim("u")
    with pytest.raises(GraphInvariantError):
        graph.claim("u")


def test_completed_uri_cannot_be_claimed_or_completed_again():
    graph = VisitGraph()
    graph.claim("u")
    graph.record_failure("u")
    with pytest.raises(GraphInvariantError):
        graph.claim("u")
    with pytest.raises(GraphInvariantError):
        graph.record_success("u", Page("u"))


def test_attempted_variants():
    graph = VisitGraph()
    graph.mark_attempted("http://www.a.com")
    assert graph.was_attempted("http://www.a.com")
    assert not graph.was_attempted("http://a.com")


def test_queue_is_fifo_with_set_semantics():
    queue = DiscoveryQueue()
    assert queue.add("a")
    assert queue.add("b")
    assert not queue.add("a")
    assert queue.add("c")

    assert len(queue) == 3
    assert "b" in queue
    assert [queue.pop(), queue.pop(), queue.pop()] == ["a", "b", "c"]
    assert not queue


def test_pop_empty_queue():
    with pytest.raises(IndexError):
        DiscoveryQueue().pop()


def test_queue_clear():
    queue = DiscoveryQueue()
    queue.add("a")
    queue.clear()
    assert len(queue) == 0


def test_answered_variants_point_at_their_page():
    graph = VisitGraph()
    graph.claim("http://a.com/x")
    graph.record_success("http://a.com/x", Page("http://a.com/x"), "http://www.a.com/x")

    assert graph.answered_by(["http://a.com/x/", "http://www.a.com/x"]) == (
        "http://www.a.com/x",
        "http://a.com/x",
    )
    assert graph.answered_by(["http://a.com/x"]) is None
