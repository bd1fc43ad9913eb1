from __future__ import annotations

import re
from dataclasses import dataclass, fields, replace
from typing import Any

"""Marker vocabulary: the texts that identify the role of a row.

Defaults are English; a run configuration may override any field (e.g. to
process documents written in another language).
"""

__all__ = [
    "MarkerLabels",
    "DEFAULT_LABELS",
]


@dataclass(frozen=True)
class MarkerLabels:
    level: tuple[str, ...] = ("Noise level, day", "Noise level, night")
    limit: tuple[str, ...] = ("Limit value", "Limit value indoor")
    excess: tuple[str, ...] = ("Excess", "Excess indoor")
    required_isolation: str = "Required isolation"
    barrier_isolation: str = "Barrier isolation"
    correction: str = "Correction for existing/prospective position"
    limit_correction_suffix: str = " incl. -5 dB correction"
    # case-insensitive substrings used to classify rows during aggregation
    level_marker: str = "level"
    limit_marker: str = "limit"
    excess_marker: str = "excess"
    point_name_pattern: str = r"PT-?\d+.*"

    @property
    def point_name_re(self) -> re.Pattern[str]:
        return re.compile(self.point_name_pattern)

    def is_point_name(self, text: str) -> bool:
        return self.point_name_re.fullmatch(text) is not None

    def with_overrides(self, overrides: dict[str, Any] | None) -> MarkerLabels:
        """Return a copy with the given fields replaced (lists become tuples)."""
        if not overrides:
            return self
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"unknown label keys: {sorted(unknown)}")
        values = {k: tuple(v) if isinstance(v, list) else v for k, v in overrides.items()}
        return replace(self, **values)


DEFAULT_LABELS = MarkerLabels()
