"""
writer.py — result file naming and serialisation.

Output lands beside the input as ``<stem>-统计<ext>``. An existing file is
never overwritten: the next free ``(N)`` name is taken instead, and files
are created in exclusive mode so a file that appears between the scan and
the write is not clobbered either.
"""

from __future__ import annotations

import csv
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

import openpyxl
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import IllegalCharacterError

from nr_csv_analyzer.columns import (
    GRAND_TOTAL_LABEL,
    NETWORK_COLUMN,
    OUTPUT_COLUMNS,
    OUTPUT_SUFFIX,
    TIME_COLUMN,
)
from nr_csv_analyzer.detection import is_workbook_source
from nr_csv_analyzer.errors import WriteFailedError
from nr_csv_analyzer.report import OutputRow
from nr_csv_analyzer.values import parse_date_to_day, parse_numeric

logger = logging.getLogger(__name__)

MAX_OUTPUT_PATH_ATTEMPTS = 10000
DEFAULT_OUTPUT_EXTENSION = ".csv"
WORKBOOK_OUTPUT_EXTENSION = ".xlsx"
SHEET_TITLE = "Sheet1"
SHEET_FONT_NAME = "宋体"
SHEET_FONT_SIZE = 11
DATE_NUMBER_FORMAT = "yyyy-mm-dd"
UTF8_NAMES = {"utf-8", "utf8"}


# ══════════════════════════════════════════════════════════════════════════════
# OUTPUT PATHS
# ══════════════════════════════════════════════════════════════════════════════

def timestamp_token() -> str:
    override = os.environ.get("NR_CSV_ANALYZER_OUTPUT_STAMP")
    if override:
        return override
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")


def _output_parts(input_path: Path) -> tuple[Path, str, str]:
    if is_workbook_source(input_path):
        ext = WORKBOOK_OUTPUT_EXTENSION
    else:
        ext = input_path.suffix or DEFAULT_OUTPUT_EXTENSION
    return input_path.parent, input_path.stem, ext


def get_output_path(input_path: "str | Path") -> Path:
    directory, stem, ext = _output_parts(Path(input_path))
    return directory / f"{stem}{OUTPUT_SUFFIX}{ext}"


def get_next_available_output_path(input_path: "str | Path") -> Path:
    """First name in ``-统计``, ``-统计(1)``, ``-统计(2)``… that does not exist yet."""
    directory, stem, ext = _output_parts(Path(input_path))
    first = directory / f"{stem}{OUTPUT_SUFFIX}{ext}"
    if not first.exists():
        return first

    for index in range(1, MAX_OUTPUT_PATH_ATTEMPTS):
        candidate = directory / f"{stem}{OUTPUT_SUFFIX}({index}){ext}"
        if not candidate.exists():
            return candidate

    fallback = directory / f"{stem}{OUTPUT_SUFFIX}({timestamp_token()}){ext}"
    logger.warning("All numbered output names are taken; falling back to %s", fallback.name)
    return fallback


# ══════════════════════════════════════════════════════════════════════════════
# DELIMITED OUTPUT
# ══════════════════════════════════════════════════════════════════════════════

def write_csv_file(output_path: Path, rows: list[OutputRow], delimiter: str, encoding: str) -> None:
    """
    Write header + rows with the source delimiter.

    The stream is opened in the source encoding, so rows are transcoded from
    text to e.g. GB18030 bytes on their way to disk.
    """
    if encoding.lower() not in UTF8_NAMES:
        logger.debug("Transcoding output to %s", encoding)
    with open(output_path, "x", encoding=encoding, newline="") as handle:
        writer = csv.writer(handle, delimiter=delimiter, lineterminator="\n")
        writer.writerow(OUTPUT_COLUMNS)
        for row in rows:
            writer.writerow(row.values())


# ══════════════════════════════════════════════════════════════════════════════
# WORKBOOK OUTPUT
# ══════════════════════════════════════════════════════════════════════════════

def _column_width(index: int) -> int:
    if index == 0:
        return 13
    if index == 1:
        return 10
    if index == 2:
        return 33
    return 14


def _style_sheet(ws) -> None:
    """Frozen header row, fixed widths, one font for the whole sheet."""
    body_font = Font(name=SHEET_FONT_NAME, size=SHEET_FONT_SIZE)
    header_font = Font(name=SHEET_FONT_NAME, size=SHEET_FONT_SIZE, bold=True)
    for row_number, row in enumerate(ws.iter_rows(), start=1):
        for cell in row:
            if row_number == 1:
                cell.font = header_font
                cell.alignment = Alignment(horizontal="left", vertical="center")
            else:
                cell.font = body_font
                cell.alignment = Alignment(vertical="center")
    ws.freeze_panes = "A2"
    for i in range(len(OUTPUT_COLUMNS)):
        ws.column_dimensions[get_column_letter(i + 1)].width = _column_width(i)


def _sheet_value(column: str, value: str):
    if not value:
        return value
    if column == NETWORK_COLUMN:
        return value
    if column == TIME_COLUMN:
        if value == GRAND_TOTAL_LABEL:
            return value
        day = parse_date_to_day(value)
        if day is not None:
            return datetime.strptime(day, "%Y-%m-%d")
        return value
    number = parse_numeric(value)
    return value if number is None else number


def write_xlsx_file(output_path: Path, rows: list[OutputRow]) -> None:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE

    ws.append(list(OUTPUT_COLUMNS))
    for row in rows:
        ws.append([_sheet_value(column, value) for column, value in zip(OUTPUT_COLUMNS, row.values())])

    _style_sheet(ws)
    time_col = OUTPUT_COLUMNS.index(TIME_COLUMN) + 1
    for (cell,) in ws.iter_rows(min_row=2, min_col=time_col, max_col=time_col):
        if isinstance(cell.value, datetime):
            cell.number_format = DATE_NUMBER_FORMAT

    with open(output_path, "xb") as handle:
        wb.save(handle)


# ══════════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ══════════════════════════════════════════════════════════════════════════════

def write_output_file(
    source_path: "str | Path",
    output_path: "str | Path",
    rows: list[OutputRow],
    delimiter: str | None,
    encoding: str | None,
) -> Path:
    """
    Serialise ``rows`` in the source's own format.

    Any failure removes what was written so far and raises WriteFailedError;
    a pre-existing file at ``output_path`` is left alone.
    """
    output_path = Path(output_path)
    existed_before = output_path.exists()
    try:
        if is_workbook_source(source_path):
            write_xlsx_file(output_path, rows)
        else:
            write_csv_file(output_path, rows, delimiter or ",", encoding or "utf-8")
    except FileExistsError as exc:
        raise WriteFailedError(f"Refusing to overwrite existing output: {output_path}") from exc
    except (OSError, LookupError, ValueError, IllegalCharacterError) as exc:
        if not existed_before and output_path.is_file():
            output_path.unlink()
        raise WriteFailedError(f"Could not write {output_path.name}: {exc}") from exc

    logger.info("Wrote %d row(s) to %s", len(rows), output_path)
    return output_path
