from __future__ import annotations

from enum import Enum
from pathlib import Path

from ..errors import UnsupportedFile

"""FileCategory enum: the six supported input file kinds.

Each category carries the input filename pattern, the output filename pattern,
a display label and the name of the sheet holding the source data. A file is
resolved by substring match on its name; output names are checked first so
that already processed files are never taken for inputs.
"""

__all__ = [
    "MeasurementDomain",
    "Period",
    "FileCategory",
    "SOURCE_SUFFIXES",
]

SOURCE_SUFFIXES = (".xlsx", ".xls")


class MeasurementDomain(Enum):
    THERMAL = "thermal"
    VENTILATION = "ventilation"
    POSITIONAL = "positional"


class Period(Enum):
    DAY = "day"
    NIGHT = "night"


class FileCategory(Enum):
    """Closed set of input kinds (domain x period)."""
    THERMAL_DAY = ("SPL_RP_TH_day_FINAL", "Memo_SPL_RP_TH_day_FINAL", "TH day",
                   MeasurementDomain.THERMAL, Period.DAY)
    THERMAL_NIGHT = ("SPL_RP_TH_night_FINAL", "Memo_SPL_RP_TH_night_FINAL", "TH night",
                     MeasurementDomain.THERMAL, Period.NIGHT)
    VENTILATION_DAY = ("SPL_RP_OV_day_FINAL", "Memo_SPL_RP_OV_day_FINAL", "OV day",
                       MeasurementDomain.VENTILATION, Period.DAY)
    VENTILATION_NIGHT = ("SPL_RP_OV_night_FINAL", "Memo_SPL_RP_OV_night_FINAL", "OV night",
                         MeasurementDomain.VENTILATION, Period.NIGHT)
    POSITIONAL_DAY = ("SPL_RP_POS_day_FINAL", "Memo_SPL_RP_POS_day_FINAL", "POS day",
                      MeasurementDomain.POSITIONAL, Period.DAY)
    POSITIONAL_NIGHT = ("SPL_RP_POS_night_FINAL", "Memo_SPL_RP_POS_night_FINAL", "POS night",
                        MeasurementDomain.POSITIONAL, Period.NIGHT)

    def __init__(
        self,
        input_pattern: str,
        output_pattern: str,
        display_label: str,
        domain: MeasurementDomain,
        period: Period,
    ) -> None:
        self.input_pattern = input_pattern
        self.output_pattern = output_pattern
        self.display_label = display_label
        self.domain = domain
        self.period = period

    @property
    def source_sheet(self) -> str:
        return "SHEET2"

    @property
    def key(self) -> str:
        """Config / CLI key, e.g. ``ventilation_night``."""
        return self.name.lower()

    @classmethod
    def from_key(cls, key: str) -> FileCategory:
        try:
            return cls[key.strip().upper()]
        except KeyError:
            raise ValueError(f"unknown file category: {key}") from None

    @classmethod
    def from_file_name(cls, file_name: str) -> FileCategory | None:
        if any(c.output_pattern in file_name for c in cls):
            return None
        for category in cls:
            if category.input_pattern in file_name:
                return category
        return None

    @classmethod
    def resolve(cls, path: Path) -> FileCategory:
        """Resolve the category of ``path`` or raise UnsupportedFile."""
        category = cls.from_file_name(path.name)
        if category is None:
            raise UnsupportedFile(f"file matches no known category: {path.name}")
        return category

    @classmethod
    def is_supported_file(cls, path: Path) -> bool:
        return path.suffix.lower() in SOURCE_SUFFIXES and cls.from_file_name(path.name) is not None

    def output_name(self, input_name: str) -> str:
        """Substitute the input pattern with the output pattern; output is always .xlsx."""
        stem = Path(input_name).stem.replace(self.input_pattern, self.output_pattern)
        return f"{stem}.xlsx"
