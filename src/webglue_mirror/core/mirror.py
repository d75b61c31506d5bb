from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping

from bs4 import BeautifulSoup

from webglue_mirror.core.assets import locate_assets, rewrite_asset
from webglue_mirror.core.cache import MirrorCache
from webglue_mirror.core.charset import decode_html
from webglue_mirror.core.config import MirrorSettings
from webglue_mirror.core.document import parse_document, serialize_document, upgrade_insecure_urls
from webglue_mirror.core.fetcher import Fetcher
from webglue_mirror.core.models import AssetReference, TargetURL

logger = logging.getLogger(__name__)


@dataclass
class MirrorContext:
    """State of one mirroring request. Never shared between requests."""

    target: TargetURL
    soup: BeautifulSoup | None = None
    assets: list[AssetReference] = field(default_factory=list)


def rewrite_page(
    target: TargetURL,
    body: bytes,
    headers: Mapping[str, str] | None = None,
    *,
    upgrade_insecure: bool = True,
) -> str:
    """Decode, parse and rewrite a fetched page so it renders from another origin."""

    ctx = MirrorContext(target=target)
    ctx.soup = parse_document(decode_html(body, headers))
    if upgrade_insecure:
        ctx.soup = upgrade_insecure_urls(ctx.soup)
    ctx.assets = locate_assets(ctx.soup)
    for ref in ctx.assets:
        rewrite_asset(ctx.target, ref)
    logger.debug("Rewrote %d asset references for %s", len(ctx.assets), target.href)
    return serialize_document(ctx.soup)


class Mirror:
    def __init__(self, *, settings: MirrorSettings, fetcher: Fetcher, cache: MirrorCache) -> None:
        self._settings = settings
        self._fetcher = fetcher
        self._cache = cache

    async def mirror(self, url: str, client_headers: Mapping[str, str] | None = None) -> str:
        """Return the rewritten markup of ``url``, from the cache when present.

        ``url`` must already be canonical (see `resolve_target_url`). A failed
        fetch raises `FetchError` and leaves the cache untouched.
        """

        target = TargetURL.parse(url)
        if await self._cache.has(target.href):
            cached = await self._cache.get(target.href)
            if cached is not None:
                logger.debug("Cache hit for %s", target.href)
                return cached

        fetched = await self._fetcher.fetch(target, client_headers)
        html = rewrite_page(
            target,
            fetched.body,
            fetched.headers,
            upgrade_insecure=self._settings.upgrade_insecure,
        )
        await self._cache.put(target.href, html)
        logger.info("Mirrored %s (%d bytes)", target.href, len(html))
        return html
