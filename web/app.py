#!/usr/bin/env python3
from __future__ import annotations

import mimetypes
import tempfile
from pathlib import Path
from typing import Optional

import pandas as pd
import streamlit as st

from nr_csv_analyzer import AggregationOptions, preview_and_validate_csv, run_csv_aggregation
from nr_csv_analyzer.columns import REQUIRED_COLUMNS

SUPPORTED_EXTS = {".csv", ".tsv", ".txt", ".xlsx", ".xlsm", ".xls", ".ods"}
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def ensure_state() -> None:
    st.session_state.setdefault("source_path", None)
    st.session_state.setdefault("validation", None)
    st.session_state.setdefault("result", None)
    st.session_state.setdefault("workdir", tempfile.mkdtemp(prefix="nr-csv-analyzer-"))


def stage_upload(upload) -> Path:
    """Copy an uploaded file into the session work directory so output can land beside it."""
    folder = Path(st.session_state["workdir"])
    target = folder / Path(upload.name).name
    target.write_bytes(upload.getvalue())
    return target


def frame_from_rows(rows: list[list[str]]) -> pd.DataFrame:
    if not rows:
        return pd.DataFrame()
    header, body = rows[0], rows[1:]
    width = len(header)
    padded = [(row + [""] * width)[:width] for row in body]
    return pd.DataFrame(padded, columns=header)


def select_source(local_path: str, upload) -> Optional[Path]:
    if upload is not None:
        return stage_upload(upload)
    if local_path.strip():
        return Path(local_path.strip()).expanduser()
    return None


def render_validation(validation) -> None:
    cols = st.columns(3)
    cols[0].metric("Format", validation.source_format)
    cols[1].metric("Encoding", validation.encoding or "workbook")
    cols[2].metric("Delimiter", repr(validation.delimiter) if validation.delimiter else "workbook")

    if validation.message:
        st.error(validation.message)
    if validation.required_columns_found:
        st.success("All required columns are present.")
    else:
        st.warning("Missing columns: " + ", ".join(validation.missing_columns))

    if validation.preview_rows:
        st.caption(f"First {len(validation.preview_rows) - 1} data row(s)")
        st.dataframe(frame_from_rows(validation.preview_rows), width="stretch", hide_index=True)


def render_result(result) -> None:
    if not result.success:
        st.error(f"{result.error_code}: {result.message}")
        if result.missing_columns:
            st.write("Missing columns: " + ", ".join(result.missing_columns))
        return

    st.subheader("Results")
    metrics = st.columns(3)
    metrics[0].metric("Processed rows", result.processed_rows)
    metrics[1].metric("Skipped rows", result.skipped_rows)
    metrics[2].metric("Invalid values", sum(result.invalid_field_stats.values()))
    st.caption(f"Written to {result.output_path}")

    invalid = [
        {"column": column, "invalid": count}
        for column, count in result.invalid_field_stats.items()
        if count
    ]
    if invalid:
        st.markdown("**Invalid values per column**")
        st.dataframe(pd.DataFrame(invalid), width="stretch", hide_index=True)

    if result.result_rows:
        st.dataframe(frame_from_rows(result.result_rows), width="stretch", hide_index=True)

    output_path = Path(result.output_path)
    if output_path.is_file():
        mime = XLSX_MIME if output_path.suffix == ".xlsx" else mimetypes.guess_type(output_path.name)[0]
        st.download_button(
            "Download summary",
            data=output_path.read_bytes(),
            file_name=output_path.name,
            mime=mime or "text/csv",
            width="stretch",
        )


def main() -> None:
    st.set_page_config(page_title="nr-csv-analyzer", layout="wide", initial_sidebar_state="collapsed")
    ensure_state()

    st.title("nr-csv-analyzer")
    st.caption("Daily per-network KPI summaries for 5G cell exports. Required columns: " + ", ".join(REQUIRED_COLUMNS))

    local_path = st.text_input("Local file path", key="local_path_input")
    upload = st.file_uploader(
        "Or upload a file",
        type=[ext.lstrip(".") for ext in sorted(SUPPORTED_EXTS)],
        key="upload_input",
    )

    if st.button("Preview", disabled=not (local_path.strip() or upload)):
        source = select_source(local_path, upload)
        st.session_state["source_path"] = str(source) if source else None
        st.session_state["validation"] = preview_and_validate_csv(source) if source else None
        st.session_state["result"] = None

    validation = st.session_state.get("validation")
    if validation is None:
        st.info("Pick a .csv/.txt export or a spreadsheet, then press Preview.")
        return

    render_validation(validation)

    left, middle, right = st.columns(3)
    subtotals = left.checkbox("Daily subtotal rows", key="subtotals_input")
    grand_total = middle.checkbox("Grand total row", key="grand_total_input")
    blank_date = right.checkbox(
        "Blank date on detail rows",
        value=True,
        key="blank_date_input",
        disabled=not subtotals,
    )

    if st.button("Run", type="primary", width="stretch", disabled=not validation.required_columns_found):
        options = AggregationOptions(
            include_daily_subtotal_rows=subtotals,
            include_grand_total_row=grand_total,
            blank_date_for_detail_rows_when_subtotal_enabled=blank_date,
        )
        with st.spinner("Aggregating..."):
            st.session_state["result"] = run_csv_aggregation(st.session_state["source_path"], options)

    result = st.session_state.get("result")
    if result is not None:
        render_result(result)


if __name__ == "__main__":
    main()
