from __future__ import annotations

import asyncio

import aiohttp
import pytest
from aioresponses import aioresponses
from bs4 import BeautifulSoup
from yarl import URL

from webglue_mirror.core.cache import MemoryCache
from webglue_mirror.core.config import MirrorSettings
from webglue_mirror.core.fetcher import Fetcher
from webglue_mirror.core.mirror import Mirror, rewrite_page
from webglue_mirror.core.models import DecodeError, FetchError, TargetURL

PAGE_URL = "http://example.com/dir/page.html"
PAGE_HTML = (
    "<html><head><link rel='stylesheet' href='http://example.com/x.css'></head>"
    "<body><img src='../img/a.png'></body></html>"
)


def _mirror(session: aiohttp.ClientSession, cache: MemoryCache, **overrides) -> Mirror:
    settings = MirrorSettings(**overrides)
    return Mirror(settings=settings, fetcher=Fetcher(settings=settings, session=session), cache=cache)


@pytest.mark.asyncio
async def test_end_to_end_rewrite_and_cache_hit() -> None:
    cache = MemoryCache()
    with aioresponses() as m:
        m.get(PAGE_URL, status=200, body=PAGE_HTML, headers={"Content-Type": "text/html"})
        async with aiohttp.ClientSession() as session:
            mirror = _mirror(session, cache)
            first = await mirror.mirror(PAGE_URL, {"User-Agent": "UA"})
            second = await mirror.mirror(PAGE_URL, {"User-Agent": "UA"})

        assert len(m.requests[("GET", URL(PAGE_URL))]) == 1

    soup = BeautifulSoup(first, "lxml")
    assert soup.find("img")["src"] == "https://example.com/img/a.png"
    assert soup.find("link")["href"] == "https://example.com/x.css"
    assert second == first
    assert await cache.get(PAGE_URL) == first


@pytest.mark.asyncio
async def test_cached_document_is_returned_unchanged() -> None:
    cache = MemoryCache()
    await cache.put(PAGE_URL, "<p>stored</p>")
    with aioresponses() as m:
        async with aiohttp.ClientSession() as session:
            html = await _mirror(session, cache).mirror(PAGE_URL)
        assert not m.requests
    assert html == "<p>stored</p>"


@pytest.mark.asyncio
async def test_failed_fetch_writes_nothing_to_cache() -> None:
    cache = MemoryCache()
    with aioresponses() as m:
        m.get(PAGE_URL, status=500)
        async with aiohttp.ClientSession() as session:
            with pytest.raises(FetchError):
                await _mirror(session, cache).mirror(PAGE_URL)
    assert not await cache.has(PAGE_URL)


@pytest.mark.asyncio
async def test_non_html_target_is_a_decode_error() -> None:
    cache = MemoryCache()
    url = "http://example.com/logo.png"
    with aioresponses() as m:
        m.get(url, status=200, body=b"\x89PNG\r\n", headers={"Content-Type": "image/png"})
        async with aiohttp.ClientSession() as session:
            with pytest.raises(DecodeError):
                await _mirror(session, cache).mirror(url)
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_concurrent_requests_do_not_share_state() -> None:
    cache = MemoryCache()
    a = "http://a.example/x/index.html"
    b = "http://b.example/y/index.html"
    with aioresponses() as m:
        m.get(a, status=200, body="<img src='pic.png'>", headers={"Content-Type": "text/html"})
        m.get(b, status=200, body="<img src='pic.png'>", headers={"Content-Type": "text/html"})
        async with aiohttp.ClientSession() as session:
            mirror = _mirror(session, cache)
            out_a, out_b = await asyncio.gather(mirror.mirror(a), mirror.mirror(b))

    assert BeautifulSoup(out_a, "lxml").find("img")["src"] == "https://a.example/x/pic.png"
    assert BeautifulSoup(out_b, "lxml").find("img")["src"] == "https://b.example/y/pic.png"


def test_rewrite_page_decodes_with_declared_charset() -> None:
    target = TargetURL.parse(PAGE_URL)
    body = "<html><body><p>café</p><a href='next.html'>n</a></body></html>".encode("latin-1")
    html = rewrite_page(target, body, {"Content-Type": "text/html; charset=iso-8859-1"})
    soup = BeautifulSoup(html, "lxml")
    assert soup.find("p").get_text() == "café"
    assert soup.find("a")["href"] == "https://example.com/dir/next.html"


def test_insecure_upgrade_touches_all_text() -> None:
    target = TargetURL.parse(PAGE_URL)
    body = b"<html><body><p>see http://other.org/</p><img src='http://cdn.org/a.png'></body></html>"

    upgraded = BeautifulSoup(rewrite_page(target, body, {}), "lxml")
    assert upgraded.find("p").get_text() == "see https://other.org/"
    assert upgraded.find("img")["src"] == "https://cdn.org/a.png"

    kept = BeautifulSoup(rewrite_page(target, body, {}, upgrade_insecure=False), "lxml")
    assert kept.find("p").get_text() == "see http://other.org/"
    assert kept.find("img")["src"] == "http://cdn.org/a.png"


def test_inline_and_block_styles_are_rewritten() -> None:
    target = TargetURL.parse(PAGE_URL)
    body = (
        b"<html><head><style>.a{background:url(\"bg.png\")}</style></head>"
        b"<body><div style='background-image: url(/hero.jpg)'></div>"
        b"<img srcset='s.png 1x, l.png 2x'></body></html>"
    )
    soup = BeautifulSoup(rewrite_page(target, body, {"Content-Type": "text/html"}), "lxml")
    assert soup.find("style").get_text() == '.a{background:url("https://example.com/dir/bg.png")}'
    assert soup.find("div")["style"] == "background-image: url(https://example.com/hero.jpg)"
    assert soup.find("img")["srcset"] == "https://example.com/dir/s.png 1x,https://example.com/dir/l.png 2x"


def test_unknown_declared_charset_falls_back() -> None:
    target = TargetURL.parse(PAGE_URL)
    body = b"<html><body><img src='a.png'></body></html>"
    html = rewrite_page(target, body, {"Content-Type": "text/html; charset=x-unknown"})
    assert BeautifulSoup(html, "lxml").find("img")["src"] == "https://example.com/dir/a.png"


def test_octet_stream_html_is_mirrored() -> None:
    target = TargetURL.parse(PAGE_URL)
    body = b"<html><body><img src='a.png'></body></html>"
    html = rewrite_page(target, body, {"Content-Type": "application/octet-stream"})
    assert BeautifulSoup(html, "lxml").find("img")["src"] == "https://example.com/dir/a.png"
