"""Cell value parsing and formatting for KPI aggregation."""

from __future__ import annotations

import math
import re
import warnings
from datetime import datetime
from decimal import ROUND_HALF_UP, Context, Decimal

import pandas as pd

# Order matters: the first pattern whose shape and calendar both match wins.
DATE_FORMAT_PATTERNS = [
    ("%Y-%m-%d %H:%M:%S", re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$"), "YYYY-MM-DD HH:mm:ss"),
    ("%Y/%m/%d %H:%M:%S", re.compile(r"^\d{4}/\d{2}/\d{2} \d{2}:\d{2}:\d{2}$"), "YYYY/MM/DD HH:mm:ss"),
    ("%Y-%m-%d %H:%M", re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}$"), "YYYY-MM-DD HH:mm"),
    ("%Y/%m/%d %H:%M", re.compile(r"^\d{4}/\d{2}/\d{2} \d{2}:\d{2}$"), "YYYY/MM/DD HH:mm"),
    ("%Y-%m-%d", re.compile(r"^\d{4}-\d{2}-\d{2}$"), "YYYY-MM-DD"),
    ("%Y/%m/%d", re.compile(r"^\d{4}/\d{2}/\d{2}$"), "YYYY/MM/DD"),
    ("%Y%m%d%H%M%S", re.compile(r"^\d{14}$"), "YYYYMMDDHHmmss"),
    ("%Y%m%d", re.compile(r"^\d{8}$"), "YYYYMMDD"),
]

NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
DAY_FORMAT = "%Y-%m-%d"
SIX_PLACES = Decimal("0.000001")
# Wide enough to quantize any finite double without InvalidOperation.
QUANTIZE_CONTEXT = Context(prec=400)


def parse_date_to_day(value: str | None) -> str | None:
    """Return the ``YYYY-MM-DD`` day of a timestamp cell, or None."""
    if value is None:
        return None
    raw = value.strip()
    if not raw:
        return None

    for fmt, pattern, _label in DATE_FORMAT_PATTERNS:
        if not pattern.fullmatch(raw):
            continue
        try:
            return datetime.strptime(raw, fmt).strftime(DAY_FORMAT)
        except ValueError:
            continue

    # Permissive fallback for anything the strict shapes missed. Digit-free
    # text such as "now" or "today" would resolve to the run date.
    if not any(ch.isdigit() for ch in raw):
        return None
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            parsed = pd.to_datetime(raw, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return None
    if pd.isna(parsed):
        return None
    return parsed.strftime(DAY_FORMAT)


def parse_numeric(value: str | None) -> float | None:
    """Parse a measurement cell.

    Thousands separators and percent signs are dropped, so ``"88.8%"`` is
    ``88.8`` rather than ``0.888``.
    """
    if value is None:
        return None
    cleaned = value.strip().replace(",", "").replace("%", "")
    if not cleaned or not NUMBER_RE.fullmatch(cleaned):
        return None
    number = float(cleaned)
    if not math.isfinite(number):
        return None
    return number


def format_number(value: float) -> str:
    if not math.isfinite(value):
        return ""
    # Ties round away from zero on the exact binary value.
    rounded = Decimal(value).quantize(SIX_PLACES, rounding=ROUND_HALF_UP, context=QUANTIZE_CONTEXT)
    text = f"{rounded:f}".rstrip("0").rstrip(".")
    if text in {"-0", ""}:
        return "0"
    return text


def format_average(total: float, count: int) -> str:
    if count <= 0:
        return ""
    return format_number(total / count)


def is_date_like(value: str) -> bool:
    return parse_date_to_day(value) is not None
