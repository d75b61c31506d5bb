from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncIterator

import aiohttp
from aiohttp import web

from webglue_mirror.core.cache import MirrorCache, create_cache
from webglue_mirror.core.config import AppConfig
from webglue_mirror.core.fetcher import Fetcher
from webglue_mirror.core.mirror import Mirror
from webglue_mirror.core.models import InvalidTargetURL, MirrorError
from webglue_mirror.core.urls import resolve_target_url

logger = logging.getLogger(__name__)


@dataclass
class MirrorService:
    config: AppConfig
    cache: MirrorCache
    mirror: Mirror | None = None


SERVICE_KEY = web.AppKey("mirror_service", MirrorService)


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"err": {"msg": message}}, status=status)


async def handle_mirror(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    try:
        url = resolve_target_url(request.query.get("url"), request.rel_url.raw_query_string)
    except InvalidTargetURL as e:
        return _error(e.message, 422)

    if service.mirror is None:
        return _error("Mirroring service is not ready", 503)
    try:
        html = await service.mirror.mirror(url, request.headers)
    except MirrorError as e:
        logger.warning("Mirroring failed for %s: %s", url, e.message)
        return _error(e.message, 406)
    return web.Response(text=html, content_type="text/html", charset="utf-8")


async def _client_session_ctx(app: web.Application) -> AsyncIterator[None]:
    service = app[SERVICE_KEY]
    settings = service.config.mirror
    async with aiohttp.ClientSession() as session:
        service.mirror = Mirror(
            settings=settings,
            fetcher=Fetcher(settings=settings, session=session),
            cache=service.cache,
        )
        yield
        service.mirror = None


def create_app(config: AppConfig, *, mirror: Mirror | None = None) -> web.Application:
    """Build the HTTP surface.

    Without an explicit ``mirror`` the app owns one outbound
    `aiohttp.ClientSession` for its whole lifetime.
    """

    app = web.Application()
    app[SERVICE_KEY] = MirrorService(config=config, cache=create_cache(config), mirror=mirror)
    if mirror is None:
        app.cleanup_ctx.append(_client_session_ctx)
    app.router.add_get("/mirror", handle_mirror)
    return app
