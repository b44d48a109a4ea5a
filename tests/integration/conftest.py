"""Integration fixtures: a service wired to a temp-file SQLite source."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from synreload.config import Settings
from synreload.service import SynonymReloadService

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from tests.conftest import SynonymTable


@pytest.fixture()
async def service(synonym_table: SynonymTable) -> AsyncIterator[SynonymReloadService]:
    """Started service whose timer never fires during a test; drive it via run_once()."""
    await synonym_table.insert("tv,television", "2024-01-01 00:00:00")
    svc = SynonymReloadService(
        Settings(
            source={"kind": "sql", "sql": {"database": str(synonym_table.path)}},
            reload={"interval_seconds": 3600, "timeout_seconds": 5},
        )
    )
    await svc.start()
    yield svc
    await svc.stop()
