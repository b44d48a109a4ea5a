"""Wires settings, source, builder, handle and scheduler into one service.

The service owns the timer: one background task that runs a reload cycle
every ``reload.interval_seconds``. Consumers only need ``current()``; health
checks use ``status()``.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

import structlog

from synreload.builder import DictionaryBuilder
from synreload.handle import DictionaryHandle
from synreload.models.status import ReloadStatus
from synreload.scheduler import CycleOutcome, ReloadScheduler
from synreload.source import create_source_client

if TYPE_CHECKING:
    from types import TracebackType

    from synreload.builder import SynonymDictionary
    from synreload.config import Settings
    from synreload.source import SourceClient

log = structlog.get_logger()


class SynonymReloadService:
    def __init__(
        self,
        settings: Settings,
        source: SourceClient | None = None,
        handle: DictionaryHandle | None = None,
    ) -> None:
        self.settings = settings
        self.handle = handle or DictionaryHandle()
        self._source = source if source is not None else create_source_client(settings)
        self._task: asyncio.Task[None] | None = None

        self.scheduler: ReloadScheduler | None = None
        if self._source is not None:
            self.scheduler = ReloadScheduler(
                self._source,
                DictionaryBuilder.from_settings(settings.reload),
                self.handle,
                timeout_seconds=settings.reload.timeout_seconds,
            )

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def current(self) -> SynonymDictionary:
        return self.handle.current()

    def status(self) -> ReloadStatus:
        if self.scheduler is None:
            return ReloadStatus(rule_count=self.handle.current().rule_count)
        return self.scheduler.status()

    async def run_once(self) -> CycleOutcome | None:
        """Run a single cycle. Returns ``None`` when no source is configured."""
        if self.scheduler is None:
            return None
        try:
            return await self.scheduler.run_cycle()
        except Exception:
            # A bug in a collaborator must not kill the timer loop.
            log.error("reload_cycle_crashed", exc_info=True)
            return CycleOutcome.FAILED

    async def _run_forever(self) -> None:
        interval = self.settings.reload.interval_seconds
        while True:
            await asyncio.sleep(interval)
            await self.run_once()

    async def start(self) -> None:
        """Load once, then keep reloading in the background."""
        if self.scheduler is None:
            log.warning("synonym_source_not_configured")
            return
        if self.running:
            return
        outcome = await self.run_once()
        log.info("synonym_service_started", initial_outcome=outcome, **self._status_fields())
        self._task = asyncio.create_task(self._run_forever(), name="synreload-timer")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if self._source is not None:
            await self._source.close()
        log.info("synonym_service_stopped")

    def _status_fields(self) -> dict[str, object]:
        status = self.status()
        return {
            "rules": status.rule_count,
            "last_marker": status.last_marker,
            "last_error": status.last_error,
        }

    async def __aenter__(self) -> SynonymReloadService:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()
