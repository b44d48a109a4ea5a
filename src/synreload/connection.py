"""Lazily created connections owned by a single source client.

Neither class retries on its own. The source clients decide when to
``reset()`` and try again; these only guarantee that a reset connection is
closed and that the next ``get()`` opens a fresh one.
"""

from __future__ import annotations

from pathlib import Path

import aiosqlite
import httpx
import structlog

from synreload.errors import SourceConnectionError

log = structlog.get_logger()


def _readonly_uri(database: str) -> str:
    if database.startswith("file:"):
        return database
    return f"{Path(database).expanduser().resolve().as_uri()}?mode=ro"


class LazyConnection:
    """SQLite connection opened read-only on first use."""

    def __init__(self, database: str) -> None:
        self._database = database
        self._db: aiosqlite.Connection | None = None
        self.connect_count = 0

    @property
    def connected(self) -> bool:
        return self._db is not None

    async def get(self) -> aiosqlite.Connection:
        if self._db is None:
            try:
                self._db = await aiosqlite.connect(_readonly_uri(self._database), uri=True)
            except aiosqlite.Error as exc:
                raise SourceConnectionError(
                    f"Could not open database {self._database!r}: {exc}"
                ) from exc
            self.connect_count += 1
            log.info("sql_connection_opened", database=self._database)
        return self._db

    async def reset(self) -> None:
        """Drop the current connection; the next ``get()`` reconnects."""
        db, self._db = self._db, None
        if db is None:
            return
        try:
            await db.close()
        except aiosqlite.Error:
            log.warning("sql_connection_close_error", database=self._database, exc_info=True)

    async def close(self) -> None:
        await self.reset()


def build_http_client(timeout_seconds: float = 10.0) -> httpx.AsyncClient:
    """Create the HTTP client used to poll a remote rules file."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout_seconds),
        follow_redirects=True,
        headers={"User-Agent": "synreload"},
    )


class LazyHttpClient:
    """``httpx.AsyncClient`` created on first use and rebuilt after a reset."""

    def __init__(self, timeout_seconds: float = 10.0) -> None:
        self._timeout_seconds = timeout_seconds
        self._client: httpx.AsyncClient | None = None
        self.connect_count = 0

    @property
    def connected(self) -> bool:
        return self._client is not None

    def get(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = build_http_client(self._timeout_seconds)
            self.connect_count += 1
        return self._client

    async def reset(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    async def close(self) -> None:
        await self.reset()
