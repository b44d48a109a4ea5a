"""Hot-reloading synonym dictionary backed by a database or a remote file."""

from __future__ import annotations

from synreload.builder import DictionaryBuilder, SynonymDictionary, build_dictionary
from synreload.detector import ChangeDetector, ChangeMarker
from synreload.handle import DictionaryHandle
from synreload.scheduler import CycleOutcome, ReloadScheduler
from synreload.service import SynonymReloadService

__all__ = [
    "ChangeDetector",
    "ChangeMarker",
    "CycleOutcome",
    "DictionaryBuilder",
    "DictionaryHandle",
    "ReloadScheduler",
    "SynonymDictionary",
    "SynonymReloadService",
    "build_dictionary",
]
