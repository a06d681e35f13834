"""Tests for the aiohttp content fetcher against a local test server."""

from contextlib import asynccontextmanager

import aiohttp
import pytest
from aiohttp import test_utils, web

from erc725y.errors import ContentNotFoundError, ExternalFetchError
from erc725y.providers.base import ContentFetcher
from erc725y.providers.http import AiohttpContentFetcher

PROFILE = {"LSP3Profile": {"name": "alice"}}
IMAGE = b"\x89PNG\r\n\x1a\n"


def make_app() -> web.Application:
    async def profile(request):
        return web.json_response(PROFILE)

    async def profile_as_text(request):
        return web.Response(text='{"LSP3Profile": {"name": "alice"}}', content_type="text/plain")

    async def image(request):
        return web.Response(body=IMAGE, content_type="image/png")

    async def broken(request):
        return web.Response(status=500, text="boom")

    async def garbage(request):
        return web.Response(text="not json")

    app = web.Application()
    app.router.add_get("/profile.json", profile)
    app.router.add_get("/profile.txt", profile_as_text)
    app.router.add_get("/image.png", image)
    app.router.add_get("/broken", broken)
    app.router.add_get("/garbage", garbage)
    return app


@asynccontextmanager
async def serving():
    server = test_utils.TestServer(make_app())
    await server.start_server()
    try:
        yield server
    finally:
        await server.close()


class TestAiohttpContentFetcher:
    def test_satisfies_protocol(self):
        assert isinstance(AiohttpContentFetcher(), ContentFetcher)

    @pytest.mark.asyncio
    async def test_fetch_json(self):
        async with serving() as server, AiohttpContentFetcher() as fetcher:
            assert await fetcher.fetch_json(str(server.make_url("/profile.json"))) == PROFILE

    @pytest.mark.asyncio
    async def test_fetch_json_ignores_content_type(self):
        async with serving() as server, AiohttpContentFetcher() as fetcher:
            assert await fetcher.fetch_json(str(server.make_url("/profile.txt"))) == PROFILE

    @pytest.mark.asyncio
    async def test_fetch_bytes(self):
        async with serving() as server, AiohttpContentFetcher() as fetcher:
            assert await fetcher.fetch_bytes(str(server.make_url("/image.png"))) == IMAGE

    @pytest.mark.asyncio
    async def test_not_found(self):
        async with serving() as server, AiohttpContentFetcher() as fetcher:
            url = str(server.make_url("/missing"))
            with pytest.raises(ContentNotFoundError) as exc_info:
                await fetcher.fetch_json(url)
            assert exc_info.value.url == url

    @pytest.mark.asyncio
    async def test_server_error(self):
        async with serving() as server, AiohttpContentFetcher() as fetcher:
            with pytest.raises(ExternalFetchError, match="HTTP 500"):
                await fetcher.fetch_bytes(str(server.make_url("/broken")))

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        async with serving() as server, AiohttpContentFetcher() as fetcher:
            with pytest.raises(ExternalFetchError, match="invalid JSON"):
                await fetcher.fetch_json(str(server.make_url("/garbage")))

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        async with serving() as server:
            url = str(server.make_url("/profile.json"))
        # Server is closed now
        async with AiohttpContentFetcher(timeout=5.0) as fetcher:
            with pytest.raises(ExternalFetchError):
                await fetcher.fetch_json(url)

    @pytest.mark.asyncio
    async def test_borrowed_session_left_open(self):
        async with aiohttp.ClientSession() as session:
            fetcher = AiohttpContentFetcher(session=session)
            await fetcher.close()
            assert not session.closed
