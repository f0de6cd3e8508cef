#!/usr/bin/env python3
"""
HTTP transport tests against an in-process aiohttp server.
"""
import asyncio
import random

import pytest
from aiohttp import test_utils, web

from slidepool import FailurePolicy, FetchError, HttpFetcher, OperationError, fetch_urls

SERVER_STATS = web.AppKey("server_stats", dict)


def build_app() -> web.Application:
    """Small app that tracks how many requests it is serving at once."""
    app = web.Application()
    app[SERVER_STATS] = {'active': 0, 'peak': 0, 'hits': []}

    async def item(request):
        stats = request.app[SERVER_STATS]
        n = int(request.match_info['n'])
        stats['active'] += 1
        stats['peak'] = max(stats['peak'], stats['active'])
        stats['hits'].append(n)
        try:
            await asyncio.sleep(random.uniform(0, 0.02))
        finally:
            stats['active'] -= 1
        return web.json_response({'item': n})

    async def missing(request):
        return web.json_response({'error': 'not found'}, status=404)

    async def slow(request):
        await asyncio.sleep(0.5)
        return web.Response(text="late")

    app.router.add_get('/item/{n}', item)
    app.router.add_get('/missing', missing)
    app.router.add_get('/slow', slow)
    return app


async def with_server(scenario):
    server = test_utils.TestServer(build_app())
    await server.start_server()
    try:
        return await scenario(server)
    finally:
        await server.close()


def url(server: test_utils.TestServer, path: str) -> str:
    return str(server.make_url(path))


def test_fetch_all_preserves_order_and_limit():
    async def scenario(server):
        urls = [url(server, f"/item/{i}") for i in range(30)]
        async with HttpFetcher() as fetcher:
            results = await fetcher.fetch_all(urls, limit=4)
        return urls, results, server.app[SERVER_STATS]

    urls, results, stats = asyncio.run(with_server(scenario))

    assert [r.url for r in results] == urls
    assert all(r.status == 200 for r in results)
    assert [r.content_type for r in results] == ['application/json'] * 30
    assert [r.text() for r in results] == [f'{{"item": {i}}}' for i in range(30)]
    assert sorted(stats['hits']) == list(range(30))
    assert stats['peak'] <= 4
    print(f"✓ Fetched 30 URLs, server saw at most {stats['peak']} concurrent requests")


def test_error_status_fails_fast():
    async def scenario(server):
        urls = [url(server, "/item/1"), url(server, "/missing"), url(server, "/item/2")]
        return await fetch_urls(urls, limit=1)

    with pytest.raises(OperationError) as exc_info:
        asyncio.run(with_server(scenario))

    err = exc_info.value
    assert err.index == 1
    assert isinstance(err.error, FetchError)
    assert err.error.status == 404
    assert "/missing" in err.error.url


def test_collect_all_keeps_successful_responses():
    async def scenario(server):
        urls = [url(server, "/item/1"), url(server, "/missing"), url(server, "/item/3")]
        return await fetch_urls(urls, limit=2, policy=FailurePolicy.COLLECT_ALL)

    outcomes = asyncio.run(with_server(scenario))

    assert [o.ok for o in outcomes] == [True, False, True]
    assert outcomes[0].value.to_dict()['status'] == 200
    assert outcomes[1].error.status == 404


def test_timeout_is_reported_as_fetch_error():
    async def scenario(server):
        async with HttpFetcher(timeout=0.1) as fetcher:
            return await fetcher.fetch(url(server, "/slow"))

    with pytest.raises(FetchError) as exc_info:
        asyncio.run(with_server(scenario))
    assert exc_info.value.status is None


def test_connection_refused_is_reported_as_fetch_error():
    async def scenario():
        server = test_utils.TestServer(build_app())
        await server.start_server()
        dead_url = url(server, "/item/1")
        await server.close()
        async with HttpFetcher(timeout=2) as fetcher:
            return await fetcher.fetch(dead_url)

    with pytest.raises(FetchError) as exc_info:
        asyncio.run(scenario())
    assert exc_info.value.__cause__ is not None


def test_explicit_timeout_is_kept():
    assert HttpFetcher(timeout=0).timeout.total == 0
    assert HttpFetcher(timeout=2.5).timeout.total == 2.5
    assert HttpFetcher().timeout is HttpFetcher.TIMEOUT


def test_fetch_requires_context_manager():
    fetcher = HttpFetcher()
    with pytest.raises(RuntimeError):
        asyncio.run(fetcher.fetch("http://localhost/"))


if __name__ == "__main__":
    raise SystemExit(pytest.main([__file__, "-v"]))
