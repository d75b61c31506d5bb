from __future__ import annotations

import logging
import sqlite3
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import aiosqlite

from webglue_mirror.core.config import AppConfig

logger = logging.getLogger(__name__)


class MirrorCache(Protocol):
    async def has(self, url: str) -> bool: ...

    async def get(self, url: str) -> str | None: ...

    async def put(self, url: str, html: str) -> None: ...


class MemoryCache:
    """Process-local cache of mirrored pages keyed by target url.

    With ``max_entries`` > 0 the least recently used page is evicted first.
    """

    def __init__(self, *, max_entries: int = 0) -> None:
        self._max_entries = max(0, int(max_entries))
        self._entries: OrderedDict[str, str] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    async def has(self, url: str) -> bool:
        return url in self._entries

    async def get(self, url: str) -> str | None:
        html = self._entries.get(url)
        if html is not None:
            self._entries.move_to_end(url)
        return html

    async def put(self, url: str, html: str) -> None:
        self._entries[url] = html
        self._entries.move_to_end(url)
        while self._max_entries and len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted cached mirror %s", evicted)


SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;

CREATE TABLE IF NOT EXISTS mirrored_pages (
  url TEXT PRIMARY KEY,
  html TEXT NOT NULL,
  cached_at TEXT NOT NULL
);
"""


@dataclass(frozen=True)
class SqliteCache:
    path: Path

    def initialize_sync(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.path)
        try:
            conn.executescript(SCHEMA_SQL)
            conn.commit()
        finally:
            conn.close()

    async def _connect(self) -> aiosqlite.Connection:
        """Open an aiosqlite connection.

        Callers close it in a try/finally instead of `async with conn`,
        because the connection is already started.
        """

        conn = await aiosqlite.connect(self.path)
        await conn.execute("PRAGMA journal_mode=WAL")
        await conn.execute("PRAGMA synchronous=NORMAL")
        return conn

    async def has(self, url: str) -> bool:
        conn = await self._connect()
        try:
            async with conn.execute("SELECT 1 FROM mirrored_pages WHERE url=?", (url,)) as cur:
                return (await cur.fetchone()) is not None
        finally:
            await conn.close()

    async def get(self, url: str) -> str | None:
        conn = await self._connect()
        try:
            async with conn.execute("SELECT html FROM mirrored_pages WHERE url=?", (url,)) as cur:
                row = await cur.fetchone()
                return str(row[0]) if row else None
        finally:
            await conn.close()

    async def put(self, url: str, html: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        conn = await self._connect()
        try:
            await conn.execute(
                "INSERT INTO mirrored_pages(url,html,cached_at) VALUES(?,?,?) "
                "ON CONFLICT(url) DO UPDATE SET html=excluded.html, cached_at=excluded.cached_at",
                (url, html, now),
            )
            await conn.commit()
        finally:
            await conn.close()


def create_cache(config: AppConfig) -> MirrorCache:
    backend = (config.mirror.cache_backend or "memory").strip().lower()
    if backend == "sqlite":
        cache = SqliteCache(config.paths.cache_db_path)
        cache.initialize_sync()
        return cache
    if backend != "memory":
        logger.warning("Unknown cache backend %r; using memory", backend)
    return MemoryCache(max_entries=config.mirror.cache_max_entries)
