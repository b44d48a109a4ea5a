"""Process-wide reference to the currently published dictionary."""

from __future__ import annotations

import threading

from synreload.builder import SynonymDictionary


class DictionaryHandle:
    """Copy-on-write slot holding the current ``SynonymDictionary``.

    Readers take no lock: ``current()`` is a single attribute read, and
    ``swap()`` replaces the reference in a single assignment, so a reader sees
    either the old dictionary or the new one. The lock only orders writers.
    """

    def __init__(self, initial: SynonymDictionary | None = None) -> None:
        self._current = initial if initial is not None else SynonymDictionary.empty()
        self._version = 0
        self._write_lock = threading.Lock()

    @property
    def version(self) -> int:
        """Number of swaps since creation."""
        return self._version

    def current(self) -> SynonymDictionary:
        return self._current

    def swap(self, new: SynonymDictionary) -> SynonymDictionary:
        """Publish ``new`` and return the dictionary it replaced."""
        with self._write_lock:
            previous = self._current
            self._current = new
            self._version += 1
        return previous
