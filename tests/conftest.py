"""Shared fixtures: an in-process fake source and a temp-file SQLite table."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import aiosqlite
import pytest

from synreload.models.synonyms import RawEntry

if TYPE_CHECKING:
    from pathlib import Path

    from synreload.detector import ChangeMarker
    from synreload.errors import SynReloadError


class FakeSource:
    """SourceClient double whose marker, rows and failures are set by the test."""

    def __init__(self, marker: ChangeMarker | None = None, rows: tuple[str, ...] = ()) -> None:
        self.marker = marker
        self.rows = list(rows)
        self.marker_error: SynReloadError | None = None
        self.fetch_error: SynReloadError | None = None
        self.fetch_delay = 0.0
        self.fetch_gate: asyncio.Event | None = None
        self.fetch_all_calls = 0
        self.closed = False

    def publish(self, marker: ChangeMarker | None, *rows: str) -> None:
        self.marker = marker
        self.rows = list(rows)

    async def fetch_change_marker(self) -> ChangeMarker | None:
        if self.marker_error is not None:
            raise self.marker_error
        return self.marker

    async def fetch_all(self) -> list[RawEntry]:
        self.fetch_all_calls += 1
        if self.fetch_gate is not None:
            await self.fetch_gate.wait()
        if self.fetch_delay:
            await asyncio.sleep(self.fetch_delay)
        if self.fetch_error is not None:
            raise self.fetch_error
        return [RawEntry(text=row) for row in self.rows]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture()
def fake_source() -> FakeSource:
    return FakeSource()


class SynonymTable:
    """Writer side of a temp-file ``synonym`` table, as an admin tool would use it."""

    def __init__(self, path: Path) -> None:
        self.path = path

    async def insert(self, words: str | None, update_time: str) -> None:
        async with aiosqlite.connect(self.path) as db:
            await db.execute(
                "INSERT INTO synonym (words, update_time) VALUES (?, ?)", (words, update_time)
            )
            await db.commit()

    async def execute(self, sql: str) -> None:
        async with aiosqlite.connect(self.path) as db:
            await db.execute(sql)
            await db.commit()


@pytest.fixture()
async def synonym_table(tmp_path: Path) -> SynonymTable:
    """Empty ``synonym`` table in a temp SQLite file."""
    path = tmp_path / "synonyms.db"
    async with aiosqlite.connect(path) as db:
        await db.execute(
            "CREATE TABLE synonym ("
            "  id          INTEGER PRIMARY KEY,"
            "  words       TEXT,"
            "  update_time TEXT NOT NULL"
            ")"
        )
        await db.commit()
    return SynonymTable(path)
