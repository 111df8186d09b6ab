"""
Tests for the aiohttp fetch client and an end-to-end crawl against a local server.
"""

import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from spidered.crawler.fetcher import WebFetcher
from spidered.crawler.scheduler import run_crawl
from spidered.utils.config import CrawlConfig
from spidered.utils.errors import RobotsUnavailableError

PAGES = {
    '/': '<a href="/about">About</a><a href="/blog/">Blog</a><a href="https://elsewhere.test/">x</a>',
    '/about': '<a href="/">Home</a><a href="/private/admin">Admin</a>',
    '/blog/': '<a href="/blog/first#comments">First</a><a href="/missing">Missing</a>',
    '/blog/first': '<p>No links here</p>',
    '/private/admin': '<p>secret</p>',
}


def build_app(robots: str = "User-agent: *\nDisallow: /private\n"):
    async def page(request):
        if request.path not in PAGES:
            raise web.HTTPNotFound(text="not found")
        return web.Response(text=f"<html><body>{PAGES[request.path]}</body></html>",
                            content_type='text/html')

    async def robots_txt(request):
        return web.Response(text=robots, content_type='text/plain')

    async def echo_agent(request):
        return web.Response(text=request.headers.get('User-Agent', ''),
                            headers={'X-Multi': 'one'})

    async def slow(request):
        await asyncio.sleep(2)
        return web.Response(text="late")

    app = web.Application()
    app.router.add_get('/robots.txt', robots_txt)
    app.router.add_get('/echo-agent', echo_agent)
    app.router.add_get('/slow', slow)
    app.router.add_get('/{tail:.*}', page)
    return app


@pytest.fixture
async def server():
    test_server = TestServer(build_app())
    await test_server.start_server()
    yield test_server
    await test_server.close()


@pytest.fixture
async def fetcher():
    async with WebFetcher(user_agent="TestBot/1.0", request_timeout=0.5) as web_fetcher:
        yield web_fetcher


class TestWebFetcher:

    async def test_fetch_ok(self, server, fetcher):
        result = await fetcher.fetch(str(server.make_url('/about')))

        assert result.ok
        assert result.status_code == 200
        assert b'href="/private/admin"' in result.body
        assert result.content_type.startswith('text/html')
        assert result.headers['Content-Type'][0].startswith('text/html')
        assert result.fetch_time >= 0

    async def test_sends_user_agent(self, server, fetcher):
        result = await fetcher.fetch(str(server.make_url('/echo-agent')))

        assert result.body == b"TestBot/1.0"
        assert result.headers['X-Multi'] == ['one']

    async def test_http_error_status_is_not_a_transport_error(self, server, fetcher):
        result = await fetcher.fetch(str(server.make_url('/nope')))

        assert result.ok
        assert result.status_code == 404

    async def test_connection_error(self, fetcher, unused_tcp_port):
        result = await fetcher.fetch(f"http://127.0.0.1:{unused_tcp_port}/")

        assert not result.ok
        assert result.status_code == 0
        assert result.body == b''
        assert result.error.startswith("Client error")

    async def test_timeout(self, server, fetcher):
        result = await fetcher.fetch(str(server.make_url('/slow')))

        assert not result.ok
        assert result.error == "Request timeout"

    async def test_fetch_robots(self, server, fetcher):
        result = await fetcher.fetch_robots(str(server.make_url('/')))

        assert result.url.endswith('/robots.txt')
        assert b"Disallow: /private" in result.body

    async def test_fetch_robots_transport_error(self, fetcher, unused_tcp_port):
        with pytest.raises(RobotsUnavailableError):
            await fetcher.fetch_robots(f"http://127.0.0.1:{unused_tcp_port}/")

    async def test_fetch_requires_start(self):
        with pytest.raises(RuntimeError):
            await WebFetcher(user_agent="TestBot/1.0").fetch("http://127.0.0.1/")


async def test_end_to_end_crawl(server):
    config = CrawlConfig.create(str(server.make_url('/')), socket_limit=2)

    result = await asyncio.wait_for(run_crawl(config), timeout=10)

    root = config.root_url
    assert set(result.pages) == {
        root,
        root + 'about',
        root + 'blog/',
        root + 'blog/first',
        root + 'missing',
    }
    assert result.pages[root + 'missing'].status_code == 404
    assert result.pages[root + 'blog/first'].path == '/blog/first'
    assert result.robots_blocked == 1
    assert result.failed == ()
