"""Source tracking for configuration values.

Records which source supplied each field during resolution so audits can
explain the effective configuration without revealing secrets.
"""

from .types import ConfigOrigin, SourceMap


class SourceTracker:
    """Builds up a SourceMap as sources are applied in precedence order."""

    def __init__(self) -> None:
        self._origins: dict[str, ConfigOrigin] = {}

    def set_origin(self, field: str, origin: ConfigOrigin) -> None:
        """Record that ``field`` was last set by ``origin``."""
        self._origins[field] = origin

    def apply(
        self,
        merged: dict[str, object],
        values: dict[str, object],
        origin: ConfigOrigin,
    ) -> None:
        """Merge ``values`` into ``merged`` for known fields and record their origin."""
        for field, value in values.items():
            if field in merged:
                merged[field] = value
                self._origins[field] = origin

    def get_source_map(self) -> SourceMap:
        """Copy of the origins recorded so far."""
        return dict(self._origins)


def summarize_origins(source_map: SourceMap) -> dict[str, int]:
    """Count fields per origin, e.g. ``{"default": 9, "env": 3}``."""
    counts: dict[str, int] = {}
    for origin in source_map.values():
        counts[origin] = counts.get(origin, 0) + 1
    return counts
