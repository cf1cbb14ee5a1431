# File: tests/test_fetcher.py
# HttpFetcher and Engine against a local aiohttp server
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from aiohttp import web

from conftest import FakeFetcher, links
from site_mapper.config import CrawlerConfig
from site_mapper.crawler.fetcher import HttpFetcher
from site_mapper.crawler.models import FailureReason
from site_mapper.engine import Engine

#: seconds a "slow" handler sleeps; longer than the fetch timeout used below
SLOW_SLEEP: float = 1.5


async def _serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "localhost", port)
    await site.start()
    try:
        yield f"http://localhost:{port}"
    finally:
        await runner.cleanup()


# --------------------------------------------------------------------------- #
#                            Test-server fixtures                             #
# --------------------------------------------------------------------------- #


@pytest_asyncio.fixture
async def site(unused_tcp_port: int) -> AsyncIterator[str]:
    app = web.Application()

    async def handle_root(_):
        return web.Response(
            text='<a href="/page1">1</a><a href="/page2">2</a><link href="/style.css">',
            content_type="text/html",
        )

    async def handle_page1(_):
        return web.Response(
            text='<a href="/page2">2</a><a href="/">home</a><img src="/img/logo.png">',
            content_type="text/html",
        )

    async def handle_page2(_):
        return web.Response(text='<a href="/old">old</a>', content_type="text/html")

    async def handle_old(_):
        raise web.HTTPFound("/page3")

    async def handle_page3(_):
        return web.Response(text="<h1>Page3</h1>", content_type="text/html")

    async def handle_slow(_):
        await asyncio.sleep(SLOW_SLEEP)
        return web.Response(text="<h1>slow</h1>", content_type="text/html")

    async def handle_image(_):
        return web.Response(body=b"\x89PNG", content_type="image/png")

    app.router.add_get("/", handle_root)
    app.router.add_get("/page1", handle_page1)
    app.router.add_get("/page2", handle_page2)
    app.router.add_get("/old", handle_old)
    app.router.add_get("/page3", handle_page3)
    app.router.add_get("/slow", handle_slow)
    app.router.add_get("/image.png", handle_image)

    async for url in _serve_app(app, unused_tcp_port):
        yield url


# --------------------------------------------------------------------------- #
#                                HttpFetcher                                  #
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio()
async def test_fetch_success(site: str):
    async with HttpFetcher(timeout=2.0, user_agent="TestAgent/1.0") as fetcher:
        result = await fetcher.fetch(f"{site}/page1")

    assert result.ok
    assert b'href="/page2"' in result.body
    assert result.content_type.startswith("text/html")
    assert result.status_code == 200


@pytest.mark.asyncio()
async def test_fetch_follows_redirects(site: str):
    async with HttpFetcher(timeout=2.0) as fetcher:
        result = await fetcher.fetch(f"{site}/old")

    assert result.ok
    assert b"Page3" in result.body


@pytest.mark.asyncio()
async def test_fetch_404_is_http_status_failure(site: str):
    async with HttpFetcher(timeout=2.0) as fetcher:
        result = await fetcher.fetch(f"{site}/missing")

    assert not result.ok
    assert result.reason is FailureReason.HTTP_STATUS
    assert result.status_code == 404
    assert result.describe() == "http-status(404)"


@pytest.mark.asyncio()
async def test_fetch_timeout(site: str):
    async with HttpFetcher(timeout=0.3) as fetcher:
        result = await fetcher.fetch(f"{site}/slow")

    assert result.reason is FailureReason.TIMEOUT


@pytest.mark.asyncio()
async def test_fetch_connection_refused(unused_tcp_port: int):
    async with HttpFetcher(timeout=2.0) as fetcher:
        result = await fetcher.fetch(f"http://localhost:{unused_tcp_port}/")

    assert result.reason is FailureReason.CONNECTION


@pytest.mark.asyncio()
async def test_fetch_without_session_fails_fast():
    with pytest.raises(RuntimeError):
        await HttpFetcher().fetch("http://localhost/")


# --------------------------------------------------------------------------- #
#                                  Engine                                     #
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio()
async def test_engine_maps_local_site(site: str):
    domain = site.removeprefix("http://")
    config = CrawlerConfig(domain=domain, timeout=2.0, max_concurrency=2)

    graph = await Engine(config).crawl(seed=site)

    assert graph.failures() == []
    assert set(graph) == {
        site,
        f"{site}/",
        f"{site}/page1",
        f"{site}/page2",
        f"{site}/old",
    }
    root = graph.get(site)
    assert root.static_links == (f"{site}/style.css",)
    assert graph.get(f"{site}/page1").images == (f"{site}/img/logo.png",)


@pytest.mark.asyncio()
async def test_engine_crawl_timeout_returns_partial_graph(site: str):
    domain = site.removeprefix("http://")
    config = CrawlerConfig(domain=domain, timeout=5.0, crawl_timeout=0.3)

    graph = await Engine(config).crawl(seed=f"{site}/slow")

    assert len(graph) == 0


@pytest.mark.asyncio()
async def test_engine_uses_injected_fetcher_and_hook():
    events = []
    config = CrawlerConfig(domain="mysite.com", max_concurrency=2)
    fetcher = FakeFetcher({"http://www.mysite.com": links("/a"), "http://mysite.com/a": links()})

    graph = await Engine(config, on_visit=events.append).crawl(fetcher=fetcher)

    assert set(graph) == {"http://www.mysite.com", "http://mysite.com/a"}
    assert [(e.uri, e.ok) for e in events] == [
        ("http://www.mysite.com", True),
        ("http://mysite.com/a", True),
    ]
    assert fetcher.calls == ["http://www.mysite.com", "http://mysite.com/a"]
