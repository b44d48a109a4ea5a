"""Reload cycle: check marker, fetch, build, publish.

One call to ``ReloadScheduler.run_cycle()`` walks the phases

    IDLE -> CHECKING -> FETCHING -> BUILDING -> PUBLISHING -> IDLE

and stops early on "nothing changed" or on any ``SynReloadError``. Failures
are recorded in the status snapshot and returned as a ``CycleOutcome``; they
never escape to the caller, and they never touch the published dictionary or
the change marker. Timing policy (how often to call ``run_cycle``) belongs to
the caller, see ``synreload.service``.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

from synreload.detector import ChangeDetector
from synreload.errors import ReloadTimeoutError, SynReloadError
from synreload.models.status import ReloadPhase, ReloadStatus

if TYPE_CHECKING:
    from synreload.builder import DictionaryBuilder, SynonymDictionary
    from synreload.handle import DictionaryHandle
    from synreload.source import SourceClient

log = structlog.get_logger()


class CycleOutcome(StrEnum):
    RELOADED = "reloaded"
    UNCHANGED = "unchanged"
    FAILED = "failed"
    BUSY = "busy"  # another cycle was already in flight


class ReloadScheduler:
    def __init__(
        self,
        source: SourceClient,
        builder: DictionaryBuilder,
        handle: DictionaryHandle,
        *,
        detector: ChangeDetector | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._source = source
        self._builder = builder
        self._handle = handle
        self._detector = detector or ChangeDetector()
        self._timeout_seconds = timeout_seconds
        self._lock = asyncio.Lock()
        self._status = ReloadStatus(
            last_marker=self._detector.last_marker, rule_count=handle.current().rule_count
        )

    @property
    def detector(self) -> ChangeDetector:
        return self._detector

    def status(self) -> ReloadStatus:
        return self._status

    def _update(self, **changes: object) -> None:
        self._status = self._status.model_copy(update=changes)

    def _fail(self, exc: SynReloadError, phase: ReloadPhase) -> CycleOutcome:
        log.warning(
            "synonym_reload_failed",
            phase=phase,
            code=exc.code,
            error=exc.message,
            last_marker=self._detector.last_marker,
        )
        self._update(
            phase=ReloadPhase.IDLE, last_error=exc.code, last_error_message=exc.message
        )
        return CycleOutcome.FAILED

    async def _fetch_and_build(self) -> SynonymDictionary:
        self._update(phase=ReloadPhase.FETCHING)
        entries = await self._source.fetch_all()
        self._update(phase=ReloadPhase.BUILDING)
        # Off the event loop: parsing is CPU-bound and must not stall readers.
        return await asyncio.to_thread(self._builder.build, entries)

    async def _cycle(self) -> CycleOutcome:
        self._update(phase=ReloadPhase.CHECKING, last_checked_at=datetime.now(UTC))
        try:
            candidate = await self._source.fetch_change_marker()
        except SynReloadError as exc:
            return self._fail(exc, ReloadPhase.CHECKING)

        if candidate is None or not self._detector.should_reload(candidate):
            log.debug(
                "synonym_reload_not_needed",
                candidate=candidate,
                last_marker=self._detector.last_marker,
            )
            self._update(phase=ReloadPhase.IDLE)
            return CycleOutcome.UNCHANGED

        log.info(
            "synonym_reload_started",
            candidate=candidate,
            last_marker=self._detector.last_marker,
        )
        try:
            async with asyncio.timeout(self._timeout_seconds):
                dictionary = await self._fetch_and_build()
        except TimeoutError:
            return self._fail(ReloadTimeoutError(self._timeout_seconds), self._status.phase)
        except SynReloadError as exc:
            return self._fail(exc, self._status.phase)

        self._update(phase=ReloadPhase.PUBLISHING)
        self._handle.swap(dictionary)
        marker = self._detector.advance(candidate)
        self._update(
            phase=ReloadPhase.IDLE,
            last_marker=marker,
            last_success_at=datetime.now(UTC),
            last_error=None,
            last_error_message=None,
            rule_count=dictionary.rule_count,
        )
        log.info(
            "synonym_reload_complete",
            marker=marker,
            rules=dictionary.rule_count,
            terms=dictionary.term_count,
        )
        return CycleOutcome.RELOADED

    async def run_cycle(self) -> CycleOutcome:
        """Run one reload cycle; never raises ``SynReloadError``."""
        if self._lock.locked():
            log.debug("synonym_reload_busy")
            return CycleOutcome.BUSY

        async with self._lock:
            try:
                return await self._cycle()
            finally:
                if self._status.phase != ReloadPhase.IDLE:
                    self._update(phase=ReloadPhase.IDLE)
