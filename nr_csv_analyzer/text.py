"""Header and cell text normalisation shared by every reader."""

from __future__ import annotations

import re
from datetime import date, datetime, time
from typing import Any

WHITESPACE_RUN_RE = re.compile(r"\s+")
FULL_WIDTH_BRACKETS = {"（": "(", "）": ")"}


def normalize_header(value: str) -> str:
    """Fold a header (or required-column literal) to its comparable form.

    Strips a leading BOM, turns full-width parentheses into ASCII ones,
    collapses whitespace runs to a single space and trims both ends.
    """
    text = value[1:] if value.startswith("\ufeff") else value
    for wide, narrow in FULL_WIDTH_BRACKETS.items():
        text = text.replace(wide, narrow)
    return WHITESPACE_RUN_RE.sub(" ", text).strip()


def cell_text(value: Any) -> str:
    """Render a spreadsheet cell the way a delimited export would spell it."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
