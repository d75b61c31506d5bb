from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Mapping

import aiohttp
from aiolimiter import AsyncLimiter

from webglue_mirror.core.config import MirrorSettings
from webglue_mirror.core.models import FetchError, TargetURL

logger = logging.getLogger(__name__)

# Only content negotiation headers are passed through; never cookies or auth.
FORWARDED_HEADERS = ("User-Agent", "Accept", "Accept-Language")


def forwardable_headers(client_headers: Mapping[str, str] | None, *, default_user_agent: str = "") -> dict[str, str]:
    lowered = {str(k).lower(): v for k, v in (client_headers or {}).items()}
    headers: dict[str, str] = {}
    for name in FORWARDED_HEADERS:
        value = lowered.get(name.lower())
        if value:
            headers[name] = str(value)
    if "User-Agent" not in headers and default_user_agent:
        headers["User-Agent"] = default_user_agent
    return headers


@dataclass(frozen=True)
class FetchResult:
    url: str
    final_url: str
    status: int
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)


class Fetcher:
    def __init__(self, *, settings: MirrorSettings, session: aiohttp.ClientSession) -> None:
        self._settings = settings
        self._session = session
        # aiolimiter acquires 1 "token" per request by default.
        # If requests_per_second < 1, we must stretch the time period instead of using a
        # fractional max_rate, otherwise aiolimiter raises:
        # "Can't acquire more than the maximum capacity".
        rps = max(0.1, float(settings.requests_per_second))
        if rps >= 1.0:
            self._limiter = AsyncLimiter(max_rate=rps, time_period=1.0)
        else:
            self._limiter = AsyncLimiter(max_rate=1.0, time_period=1.0 / rps)

    async def fetch(self, target: TargetURL, client_headers: Mapping[str, str] | None = None) -> FetchResult:
        """GET the target page and return its undecoded body.

        Transport failures, timeouts, HTTP errors and oversized bodies all
        surface as `FetchError`. Nothing is retried.
        """

        url = target.href
        headers = forwardable_headers(client_headers, default_user_agent=self._settings.user_agent)
        timeout = aiohttp.ClientTimeout(total=self._settings.timeout_seconds)
        logger.info("Fetching %s", url)
        try:
            async with self._limiter:
                async with self._session.get(url, headers=headers, timeout=timeout, allow_redirects=True) as resp:
                    status = int(resp.status)
                    final_url = str(resp.url)
                    if status >= 400:
                        raise FetchError(url, f"HTTP {status}")
                    if final_url != url:
                        logger.debug("Followed redirect %s -> %s", url, final_url)

                    chunks: list[bytes] = []
                    size = 0
                    async for chunk in resp.content.iter_chunked(256 * 1024):
                        size += len(chunk)
                        if size > self._settings.max_body_bytes:
                            raise FetchError(url, f"Response larger than {self._settings.max_body_bytes} bytes")
                        chunks.append(chunk)
                    response_headers = {k: v for k, v in resp.headers.items()}
        except asyncio.TimeoutError as e:
            logger.warning("Fetch timed out: %s", url)
            raise FetchError(url, f"Timed out after {self._settings.timeout_seconds}s") from e
        except aiohttp.ClientError as e:
            logger.warning("Fetch error: %s (%s)", url, e)
            raise FetchError(url, str(e) or e.__class__.__name__) from e

        body = b"".join(chunks)
        logger.debug("Fetched %s status=%s bytes=%d", url, status, len(body))
        return FetchResult(url=url, final_url=final_url, status=status, body=body, headers=response_headers)
