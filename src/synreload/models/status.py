from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from synreload.detector import ChangeMarker
from synreload.errors import ErrorCode


class ReloadPhase(StrEnum):
    IDLE = "idle"
    CHECKING = "checking"
    FETCHING = "fetching"
    BUILDING = "building"
    PUBLISHING = "publishing"


class ReloadStatus(BaseModel):
    """Point-in-time snapshot of the reload subsystem for health checks.

    Replaced wholesale on every transition, never mutated, so a reader always
    sees one consistent set of fields.
    """

    model_config = ConfigDict(frozen=True)

    phase: ReloadPhase = ReloadPhase.IDLE
    last_marker: ChangeMarker | None = None  # None: never reloaded
    last_checked_at: datetime | None = None
    last_success_at: datetime | None = None
    last_error: ErrorCode | None = None
    last_error_message: str | None = None
    rule_count: int = 0
