from __future__ import annotations

from synreload.models.status import ReloadPhase, ReloadStatus
from synreload.models.synonyms import RawEntry, RuleFormat, SynonymRule

__all__ = [
    # synonyms
    "RawEntry",
    "RuleFormat",
    "SynonymRule",
    # status
    "ReloadPhase",
    "ReloadStatus",
]
