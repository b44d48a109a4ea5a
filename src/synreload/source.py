"""Source clients: fetch raw synonym entries and the last-change marker.

Both calls are all-or-nothing. A transport-level failure resets the
connection and is retried exactly once; whatever fails the second time is
raised as ``SourceConnectionError`` (could not connect) or ``QueryError``
(connected, but the query or response was bad).
"""

from __future__ import annotations

import math
import time
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING, Any, Protocol

import aiosqlite
import httpx
import structlog

from synreload.connection import LazyConnection, LazyHttpClient
from synreload.detector import ChangeMarker
from synreload.errors import QueryError, SourceConnectionError
from synreload.models.synonyms import RawEntry

if TYPE_CHECKING:
    from synreload.config import HttpSourceSettings, Settings, SqlSourceSettings

log = structlog.get_logger()


class SourceClient(Protocol):
    async def fetch_all(self) -> list[RawEntry]: ...

    async def fetch_change_marker(self) -> ChangeMarker | None: ...

    async def close(self) -> None: ...


def _epoch_millis(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return int(value.timestamp() * 1000)


def _finite(value: float, raw: Any) -> float:
    if not math.isfinite(value):
        raise QueryError(f"Non-finite change marker: {raw!r}")
    return value


def marker_from_value(value: Any) -> ChangeMarker | None:
    """Normalize a marker column value, ``None`` if NULL.

    Timestamps (``datetime`` or ISO-8601 text) become epoch milliseconds.
    Numbers, and numeric text, keep their own value so version counters and
    fractional markers such as ``julianday()`` compare exactly.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise QueryError(f"Unexpected boolean change marker: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return _finite(value, value)
    if isinstance(value, datetime):
        return _epoch_millis(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            pass
        else:
            return _finite(number, value)
        try:
            return _epoch_millis(datetime.fromisoformat(text))
        except ValueError as exc:
            raise QueryError(f"Unparseable change marker: {value!r}") from exc
    raise QueryError(f"Unexpected change marker type: {type(value).__name__}")


# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------


class SqlSourceClient:
    """Reads rules and the last-modified timestamp from a SQLite database."""

    def __init__(
        self, settings: SqlSourceSettings, connection: LazyConnection | None = None
    ) -> None:
        self._settings = settings
        self._connection = connection or LazyConnection(settings.database)

    async def _execute(self, sql: str) -> tuple[list[str], list[Any]]:
        db = await self._connection.get()
        start = time.perf_counter()
        async with db.execute(sql) as cursor:
            rows = await cursor.fetchall()
            columns = [col[0] for col in cursor.description or ()]
        log.info(
            "sql_query_complete",
            rows=len(rows),
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        return columns, list(rows)

    async def _query(self, sql: str) -> tuple[list[str], list[Any]]:
        try:
            return await self._execute(sql)
        except (SourceConnectionError, aiosqlite.Error) as exc:
            log.warning("sql_query_retry", error=str(exc))
            await self._connection.reset()

        try:
            return await self._execute(sql)
        except aiosqlite.Error as exc:
            await self._connection.reset()
            raise QueryError(f"Query failed: {exc}") from exc

    @staticmethod
    def _column(columns: list[str], name: str) -> int:
        try:
            return columns.index(name)
        except ValueError:
            raise QueryError(f"Column {name!r} not in result columns {columns}") from None

    async def fetch_all(self) -> list[RawEntry]:
        columns, rows = await self._query(self._settings.entries_query)
        idx = self._column(columns, self._settings.entries_column)
        entries = []
        for row in rows:
            value = row[idx]
            if value is None:
                continue
            if not isinstance(value, str):
                raise QueryError(f"Entry column holds {type(value).__name__}, expected text")
            entries.append(RawEntry(text=value))
        return entries

    async def fetch_change_marker(self) -> ChangeMarker | None:
        columns, rows = await self._query(self._settings.marker_query)
        if not rows:
            return None
        return marker_from_value(rows[0][self._column(columns, self._settings.marker_column)])

    async def close(self) -> None:
        await self._connection.close()


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


class HttpSourceClient:
    """Polls a remote rules file; ``Last-Modified`` is the change marker."""

    def __init__(
        self, settings: HttpSourceSettings, client: LazyHttpClient | None = None
    ) -> None:
        self._settings = settings
        self._client = client or LazyHttpClient(settings.timeout_seconds)

    async def _request(self, method: str) -> httpx.Response:
        url = self._settings.url
        try:
            response = await self._client.get().request(method, url)
        except httpx.TransportError as exc:
            log.warning("http_request_retry", method=method, url=url, error=str(exc))
            await self._client.reset()
            try:
                response = await self._client.get().request(method, url)
            except httpx.TransportError as retry_exc:
                await self._client.reset()
                raise SourceConnectionError(f"{method} {url} failed: {retry_exc}") from retry_exc

        if response.status_code >= 400:
            raise QueryError(f"{method} {url} returned HTTP {response.status_code}")
        return response

    async def fetch_all(self) -> list[RawEntry]:
        response = await self._request("GET")
        return [RawEntry(text=line) for line in response.text.splitlines() if line.strip()]

    async def fetch_change_marker(self) -> ChangeMarker | None:
        response = await self._request("HEAD")
        header = response.headers.get("last-modified")
        if not header:
            return None
        try:
            return _epoch_millis(parsedate_to_datetime(header))
        except (TypeError, ValueError) as exc:
            raise QueryError(f"Unparseable Last-Modified header: {header!r}") from exc

    async def close(self) -> None:
        await self._client.close()


def create_source_client(settings: Settings) -> SourceClient | None:
    """Build the configured source client, or ``None`` when none is configured."""
    source = settings.source
    if source is None:
        return None
    if source.kind == "http" and source.http is not None:
        return HttpSourceClient(source.http)
    if source.kind == "sql" and source.sql is not None:
        return SqlSourceClient(source.sql)
    raise ValueError(f"source.kind is {source.kind!r} but source.{source.kind} is missing")
