"""
detection.py — encoding, delimiter and source-format detection.

Text sources are sniffed from a bounded head of the file: at most
``HEAD_MAX_BYTES`` bytes or ``HEAD_MAX_LINES`` lines, whichever comes
first. Spreadsheet sources are read row by row from the first sheet.

Public API:
    detection = detect_text_file("path/to/export.csv")
    rows      = iter_source_rows(path, detection.encoding, detection.delimiter)
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

import chardet
import openpyxl

from nr_csv_analyzer.errors import ParseFailedError
from nr_csv_analyzer.text import cell_text

logger = logging.getLogger(__name__)

# ── Format groups ──────────────────────────────────────────────────────────────
MODERN_WORKBOOK_FORMATS = {".xlsx", ".xlsm"}
LEGACY_WORKBOOK_FORMATS = {".xls": "xls", ".ods": "ods"}

DEFAULT_ENCODING = "utf-8"
DEFAULT_DELIMITER = ","
DELIMITER_CANDIDATES = (",", ";", "\t", "|")
DELIMITER_SAMPLE_LINES = 20

HEAD_MAX_BYTES = 2 * 1024 * 1024
HEAD_MAX_LINES = 101
HEAD_CHUNK_BYTES = 64 * 1024
PREVIEW_MAX_ROWS = 100

# Heuristic remaps tuned for carrier exports; every other guess passes through.
ENCODING_REMAPS = {
    "ascii": "utf-8",
    "gb2312": "gb18030",
    "windows-1252": "utf-8",
}


@dataclass(frozen=True)
class Detection:
    encoding: str | None
    delimiter: str | None
    preview_rows: list[list[str]] = field(default_factory=list)
    source_format: str = "delimited"


# ══════════════════════════════════════════════════════════════════════════════
# SOURCE FORMAT
# ══════════════════════════════════════════════════════════════════════════════

def source_format(path: "str | Path") -> str:
    """Classify a path as ``delimited``, ``xlsx``, ``xls`` or ``ods``."""
    suffix = Path(path).suffix.lower()
    if suffix in MODERN_WORKBOOK_FORMATS:
        return "xlsx"
    return LEGACY_WORKBOOK_FORMATS.get(suffix, "delimited")


def is_workbook_source(path: "str | Path") -> bool:
    return source_format(path) != "delimited"


# ══════════════════════════════════════════════════════════════════════════════
# DELIMITER DETECTION
# ══════════════════════════════════════════════════════════════════════════════

def detect_delimiter(text: str) -> str:
    """
    Infer the field delimiter from sample text.

    Each candidate scores ``lines with more than one field`` doubled when
    every sampled line splits into the same number of fields. Ties go to the
    earlier candidate; an all-zero board falls back to a comma.
    """
    lines = [line.strip() for line in text.splitlines()]
    lines = [line for line in lines if line][:DELIMITER_SAMPLE_LINES]

    best_delim = DEFAULT_DELIMITER
    best_score = 0
    for delim in DELIMITER_CANDIDATES:
        counts = [len(line.split(delim)) for line in lines]
        if not counts:
            continue
        multi_field = sum(1 for count in counts if count > 1)
        consistency = 2 if all(count == counts[0] for count in counts) else 1
        score = multi_field * consistency
        if score > best_score:
            best_score = score
            best_delim = delim
    return best_delim


# ══════════════════════════════════════════════════════════════════════════════
# ENCODING DETECTION
# ══════════════════════════════════════════════════════════════════════════════

def read_file_head(
    path: "str | Path",
    max_bytes: int = HEAD_MAX_BYTES,
    max_lines: int = HEAD_MAX_LINES,
) -> bytes:
    """
    Read the start of a file without loading the rest of it.

    Stops at ``max_bytes`` or once ``max_lines`` lines are buffered. When the
    read stops before end of file, the trailing partial line is dropped so
    neither the encoding guess nor the preview sees a cut-off record.
    """
    chunks: list[bytes] = []
    total = 0
    newlines = 0
    with open(path, "rb") as handle:
        while total < max_bytes and newlines < max_lines:
            chunk = handle.read(min(HEAD_CHUNK_BYTES, max_bytes - total))
            if not chunk:
                break
            chunks.append(chunk)
            total += len(chunk)
            newlines += chunk.count(b"\n")
        at_eof = not handle.read(1)

    head = b"".join(chunks)
    if newlines >= max_lines:
        cut = -1
        for _ in range(max_lines):
            cut = head.index(b"\n", cut + 1)
        return head[: cut + 1]
    if not at_eof:
        cut = head.rfind(b"\n")
        if cut >= 0:
            head = head[: cut + 1]
    return head


def normalize_encoding_name(guess: str | None) -> str:
    if not guess:
        return DEFAULT_ENCODING
    name = guess.lower()
    return ENCODING_REMAPS.get(name, name)


def detect_encoding(raw: bytes) -> str:
    """Guess the byte encoding of ``raw`` with chardet and normalise it."""
    result = chardet.detect(raw)
    encoding = normalize_encoding_name(result.get("encoding"))
    logger.debug(
        "chardet guessed %r (confidence %.2f); using %s",
        result.get("encoding"),
        result.get("confidence") or 0.0,
        encoding,
    )
    return encoding


# ══════════════════════════════════════════════════════════════════════════════
# ROW PARSING
# ══════════════════════════════════════════════════════════════════════════════

def _reader(stream, delimiter: str):
    return csv.reader(stream, delimiter=delimiter)


def parse_delimited_rows(text: str, delimiter: str, max_rows: int = PREVIEW_MAX_ROWS) -> list[list[str]]:
    """Parse at most a header plus ``max_rows`` non-empty records from text."""
    rows: list[list[str]] = []
    try:
        for row in _reader(io.StringIO(text, newline=""), delimiter):
            if not row:
                continue
            rows.append(row)
            if len(rows) >= max_rows + 1:
                break
    except csv.Error as exc:
        raise ParseFailedError(f"Could not parse delimited preview: {exc}") from exc
    return rows


def _iter_delimited_rows(path: Path, encoding: str, delimiter: str) -> Iterator[list[str]]:
    with open(path, "r", encoding=encoding, errors="replace", newline="") as handle:
        reader = _reader(handle, delimiter)
        try:
            for row in reader:
                if row:
                    yield row
        except csv.Error as exc:
            raise ParseFailedError(
                f"Could not parse {path.name} near line {reader.line_num}: {exc}"
            ) from exc


def _iter_xlsx_rows(path: Path) -> Iterator[list[str]]:
    try:
        wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    except Exception as exc:
        raise ParseFailedError(f"Could not open workbook: {exc}") from exc
    try:
        ws = wb.active
        for values in ws.iter_rows(values_only=True):
            row = [cell_text(value) for value in values]
            if any(cell.strip() for cell in row):
                yield row
    finally:
        wb.close()


def _iter_legacy_workbook_rows(path: Path, fmt: str) -> Iterator[list[str]]:
    if fmt == "xls":
        try:
            import xlrd  # noqa: F401
        except ImportError:
            raise ImportError(".xls files require xlrd: pip install xlrd") from None
        engine = "xlrd"
    else:
        try:
            import odf  # noqa: F401
        except ImportError:
            raise ImportError(".ods files require odfpy: pip install odfpy") from None
        engine = "odf"

    try:
        df = _read_first_sheet(path, engine)
    except Exception as exc:
        raise ParseFailedError(f"Could not load sheet from {path.name}: {exc}") from exc
    for values in df.itertuples(index=False, name=None):
        row = [cell_text(value) for value in values]
        if any(cell.strip() for cell in row):
            yield row


def _read_first_sheet(path: Path, engine: str):
    import pandas as pd

    return pd.read_excel(path, sheet_name=0, header=None, dtype=str, keep_default_na=False, engine=engine)


def iter_source_rows(
    path: "str | Path",
    encoding: str | None = None,
    delimiter: str | None = None,
) -> Iterator[list[str]]:
    """
    Yield every non-empty record of a source, header first.

    Delimited text is decoded incrementally so only one record is held at a
    time; undecodable bytes are replaced rather than aborting the run.
    """
    path = Path(path)
    fmt = source_format(path)
    if fmt == "xlsx":
        return _iter_xlsx_rows(path)
    if fmt in LEGACY_WORKBOOK_FORMATS.values():
        return _iter_legacy_workbook_rows(path, fmt)
    return _iter_delimited_rows(path, encoding or DEFAULT_ENCODING, delimiter or DEFAULT_DELIMITER)


# ══════════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ══════════════════════════════════════════════════════════════════════════════

def detect_text_file(path: "str | Path") -> Detection:
    """Sniff encoding and delimiter from the head of a delimited file."""
    head = read_file_head(path)
    encoding = detect_encoding(head)
    try:
        text = head.decode(encoding, errors="replace")
    except LookupError as exc:
        raise ParseFailedError(f"Unsupported encoding {encoding!r}: {exc}") from exc
    delimiter = detect_delimiter(text)
    preview_rows = parse_delimited_rows(text, delimiter)
    logger.info("Detected %s: encoding=%s delimiter=%r", Path(path).name, encoding, delimiter)
    return Detection(encoding=encoding, delimiter=delimiter, preview_rows=preview_rows)


def detect_source(path: "str | Path") -> Detection:
    """Detect any supported source; spreadsheets carry no encoding or delimiter."""
    fmt = source_format(path)
    if fmt == "delimited":
        return detect_text_file(path)

    preview_rows: list[list[str]] = []
    rows = iter_source_rows(path)
    try:
        for row in rows:
            preview_rows.append(row)
            if len(preview_rows) >= PREVIEW_MAX_ROWS + 1:
                break
    finally:
        rows.close()
    logger.info("Read %s workbook preview from %s", fmt, Path(path).name)
    return Detection(encoding=None, delimiter=None, preview_rows=preview_rows, source_format=fmt)
