from __future__ import annotations

from dataclasses import dataclass

"""CalculationPoint: one named measurement location found in a sheet."""

__all__ = [
    "CalculationPoint",
]


@dataclass(frozen=True)
class CalculationPoint:
    name: str  # PT-<n>[suffix]
    description: str
    coordinates: str  # x:y:z as found in column N
    elevation: float | None  # z parsed from coordinates, None if unparseable
    row_index: int  # first data row (0-based, at discovery time)
