"""Header validation and the preview/validate entry point."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from nr_csv_analyzer.columns import REQUIRED_COLUMNS
from nr_csv_analyzer.detection import DEFAULT_DELIMITER, DEFAULT_ENCODING, detect_source
from nr_csv_analyzer.errors import AnalyzerError
from nr_csv_analyzer.text import normalize_header

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    encoding: str | None
    delimiter: str | None
    preview_rows: list[list[str]] = field(default_factory=list)
    required_columns_found: bool = False
    missing_columns: tuple[str, ...] = ()
    source_format: str = "delimited"
    message: str | None = None

    def to_dict(self) -> dict:
        return {
            "encoding": self.encoding,
            "delimiter": self.delimiter,
            "previewRows": [list(row) for row in self.preview_rows],
            "requiredColumnsFound": self.required_columns_found,
            "missingColumns": list(self.missing_columns),
            "sourceFormat": self.source_format,
            "message": self.message,
        }


def get_missing_columns(header: Iterable[str]) -> list[str]:
    """Required columns absent from ``header``, in canonical order."""
    present = {normalize_header(cell) for cell in header}
    return [column for column in REQUIRED_COLUMNS if normalize_header(column) not in present]


def validate_source(path: "str | Path") -> ValidationResult:
    """Sniff an existing source and check its header; detection errors propagate."""
    path = Path(path)
    detected = detect_source(path)
    header = detected.preview_rows[0] if detected.preview_rows else []
    missing = get_missing_columns(header)
    if missing:
        logger.info("%s is missing %d required column(s): %s", path.name, len(missing), ", ".join(missing))

    return ValidationResult(
        encoding=detected.encoding,
        delimiter=detected.delimiter,
        preview_rows=detected.preview_rows,
        required_columns_found=not missing,
        missing_columns=tuple(missing),
        source_format=detected.source_format,
    )


def _failed_validation(message: str) -> ValidationResult:
    return ValidationResult(
        encoding=DEFAULT_ENCODING,
        delimiter=DEFAULT_DELIMITER,
        preview_rows=[],
        required_columns_found=False,
        missing_columns=REQUIRED_COLUMNS,
        message=message,
    )


def preview_and_validate_csv(path: "str | Path") -> ValidationResult:
    """
    Sniff a source and check its header against the required columns.

    Never raises: a missing or unreadable file comes back as a failed
    validation with every required column reported missing.
    """
    path = Path(path)
    if not path.exists():
        logger.warning("Preview requested for missing file %s", path)
        return _failed_validation(f"File not found: {path}")
    try:
        return validate_source(path)
    except (AnalyzerError, ImportError, OSError) as exc:
        logger.warning("Could not preview %s: %s", path, exc)
        return _failed_validation(str(exc))
