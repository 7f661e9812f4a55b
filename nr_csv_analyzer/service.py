"""
service.py — the aggregation entry point.

``run_csv_aggregation`` never raises: every failure comes back as an
``AggregationRunResult`` whose ``error_code`` is one of the codes in
``nr_csv_analyzer.errors``. Bad individual cells are not failures; they are
counted in ``invalid_field_stats`` and the run carries on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from nr_csv_analyzer.aggregation import aggregate_file
from nr_csv_analyzer.columns import empty_invalid_field_stats
from nr_csv_analyzer.errors import (
    ERROR_FILE_NOT_FOUND,
    ERROR_MISSING_COLUMNS,
    ERROR_PARSE_FAILED,
    ERROR_UNKNOWN,
    AnalyzerError,
)
from nr_csv_analyzer.report import AggregationOptions, build_output_rows, to_preview_rows
from nr_csv_analyzer.validation import validate_source
from nr_csv_analyzer.writer import get_next_available_output_path, write_output_file

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregationRunResult:
    success: bool
    processed_rows: int = 0
    skipped_rows: int = 0
    invalid_field_stats: dict[str, int] = field(default_factory=empty_invalid_field_stats)
    output_path: str | None = None
    output_file_name: str | None = None
    result_rows: list[list[str]] | None = None
    error_code: str | None = None
    message: str | None = None
    missing_columns: tuple[str, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        """camelCase payload for UI bridges; unset optional keys are omitted."""
        payload: dict[str, Any] = {
            "success": self.success,
            "processedRows": self.processed_rows,
            "skippedRows": self.skipped_rows,
            "invalidFieldStats": dict(self.invalid_field_stats),
        }
        optional = {
            "outputPath": self.output_path,
            "outputFileName": self.output_file_name,
            "resultRows": self.result_rows,
            "errorCode": self.error_code,
            "message": self.message,
            "missingColumns": list(self.missing_columns) if self.missing_columns is not None else None,
        }
        payload.update({key: value for key, value in optional.items() if value is not None})
        return payload


def _failure(code: str, message: str, **extra: Any) -> AggregationRunResult:
    return AggregationRunResult(success=False, error_code=code, message=message, **extra)


def _coerce_options(options: "AggregationOptions | Mapping[str, Any] | None") -> AggregationOptions:
    if isinstance(options, AggregationOptions):
        return options
    return AggregationOptions.from_mapping(options)


def run_csv_aggregation(
    path: "str | Path",
    options: "AggregationOptions | Mapping[str, Any] | None" = None,
) -> AggregationRunResult:
    """
    Validate, aggregate and write the per-(day, network) summary of ``path``.

    Args:
        path:    Input file (delimited text or spreadsheet).
        options: AggregationOptions or a mapping of its fields (snake_case or
                 camelCase keys). None = detail rows only.

    Returns:
        AggregationRunResult. On success it carries the output path, row
        counters, per-field invalid counts and the first 200 result rows.
    """
    path = Path(path)
    try:
        if not path.exists():
            logger.warning("Input file not found: %s", path)
            return _failure(ERROR_FILE_NOT_FOUND, f"Input file not found: {path}")

        run_options = _coerce_options(options)
        validation = validate_source(path)
        if not validation.required_columns_found:
            return _failure(
                ERROR_MISSING_COLUMNS,
                "Input is missing required columns: " + ", ".join(validation.missing_columns),
                missing_columns=validation.missing_columns,
            )

        stats = aggregate_file(path, validation.encoding, validation.delimiter)
        rows = build_output_rows(stats.buckets.values(), run_options)
        output_path = get_next_available_output_path(path)
        write_output_file(path, output_path, rows, validation.delimiter, validation.encoding)
    except AnalyzerError as exc:
        logger.error("Aggregation of %s failed (%s): %s", path, exc.code, exc)
        return _failure(exc.code, str(exc))
    except ImportError as exc:
        logger.error("Cannot read %s: %s", path, exc)
        return _failure(ERROR_PARSE_FAILED, str(exc))
    except Exception as exc:
        logger.exception("Unexpected failure while aggregating %s", path)
        return _failure(ERROR_UNKNOWN, str(exc) or exc.__class__.__name__)

    logger.info(
        "Aggregated %s: processed=%d skipped=%d buckets=%d -> %s",
        path.name,
        stats.processed_rows,
        stats.skipped_rows,
        len(stats.buckets),
        output_path.name,
    )
    return AggregationRunResult(
        success=True,
        processed_rows=stats.processed_rows,
        skipped_rows=stats.skipped_rows,
        invalid_field_stats=dict(stats.invalid_field_stats),
        output_path=str(output_path),
        output_file_name=output_path.name,
        result_rows=to_preview_rows(rows),
    )
