"""Change detection against the source's last-modification marker."""

from __future__ import annotations

# Epoch milliseconds for timestamps, or the source's own number (a version
# counter, a fractional ``julianday()``). Numbers are kept as-is so that two
# distinct markers never collapse into one.
ChangeMarker = int | float

# Marker value meaning "never fetched"; sorts below every real marker.
NEVER: ChangeMarker | None = None


class ChangeDetector:
    """Remembers the marker of the last *published* dictionary.

    ``should_reload`` is a pure comparison. The marker only moves forward via
    ``advance``, which the scheduler calls after a successful publish.
    """

    def __init__(self, last_marker: ChangeMarker | None = NEVER) -> None:
        self._last_marker = last_marker

    @property
    def last_marker(self) -> ChangeMarker | None:
        return self._last_marker

    def should_reload(self, candidate: ChangeMarker | None) -> bool:
        # No signal (empty result set, NULL timestamp) never triggers a reload.
        if candidate is None:
            return False
        return self._last_marker is NEVER or candidate > self._last_marker

    def advance(self, marker: ChangeMarker) -> ChangeMarker:
        """Move the marker to ``marker`` unless that would go backwards."""
        if self._last_marker is NEVER or marker > self._last_marker:
            self._last_marker = marker
        return self._last_marker
