"""Domain models for the noise table processor.

This package holds the value objects shared by the services: file categories,
marker vocabulary, run configuration, calculation points, aggregation records
and run results.
"""

from .aggregated_point import AggregatedPointRecord, MeasurementKind, PointObservation
from .calculation_point import CalculationPoint
from .config_models import OperationsConfig, OutputsConfig, RunConfig, SummaryShape
from .file_category import FileCategory, MeasurementDomain, Period
from .labels import DEFAULT_LABELS, MarkerLabels

__all__ = [
    # Configuration models
    "RunConfig",
    "OperationsConfig",
    "OutputsConfig",
    "SummaryShape",
    "MarkerLabels",
    "DEFAULT_LABELS",
    # Input classification
    "FileCategory",
    "MeasurementDomain",
    "Period",
    # Processing models
    "CalculationPoint",
    "AggregatedPointRecord",
    "MeasurementKind",
    "PointObservation",
]
