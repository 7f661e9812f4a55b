"""Day/network KPI summaries for 5G cell-performance CSV and Excel exports."""

from nr_csv_analyzer.report import AggregationOptions
from nr_csv_analyzer.service import AggregationRunResult, run_csv_aggregation
from nr_csv_analyzer.validation import ValidationResult, preview_and_validate_csv

__version__ = "0.1.0"

__all__ = [
    "AggregationOptions",
    "AggregationRunResult",
    "ValidationResult",
    "preview_and_validate_csv",
    "run_csv_aggregation",
    "__version__",
]
