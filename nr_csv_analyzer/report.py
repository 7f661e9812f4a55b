"""Turn aggregation buckets into ordered output rows."""

from __future__ import annotations

from dataclasses import astuple, dataclass, fields
from itertools import groupby
from typing import Any, Iterable, Mapping

from nr_csv_analyzer.aggregation import AggBucket
from nr_csv_analyzer.columns import AVERAGE_FIELDS, GRAND_TOTAL_LABEL, OUTPUT_COLUMNS, SUM_FIELDS
from nr_csv_analyzer.errors import ConfigError
from nr_csv_analyzer.values import format_average, format_number

PREVIEW_RESULT_ROWS = 200

_OPTION_ALIASES = {
    "includeDailySubtotalRows": "include_daily_subtotal_rows",
    "includeGrandTotalRow": "include_grand_total_row",
    "blankDateForDetailRowsWhenSubtotalEnabled": "blank_date_for_detail_rows_when_subtotal_enabled",
}


@dataclass(frozen=True)
class AggregationOptions:
    include_daily_subtotal_rows: bool = False
    include_grand_total_row: bool = False
    blank_date_for_detail_rows_when_subtotal_enabled: bool = True

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> "AggregationOptions":
        """Build options from snake_case or camelCase keys; unset keys keep defaults."""
        if not payload:
            return cls()
        known = {f.name for f in fields(cls)}
        values: dict[str, bool] = {}
        for key, value in payload.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ConfigError(f"Unknown option: {key}")
            if not isinstance(value, bool):
                raise ConfigError(f"Option {key} must be true or false, got {value!r}")
            values[name] = value
        return cls(**values)


@dataclass(frozen=True)
class OutputRow:
    """One emitted row; attribute order matches ``OUTPUT_COLUMNS``."""

    time: str
    network: str
    flow: str
    max_users: str
    ul_prb: str
    dl_prb: str
    ul_rate: str
    dl_rate: str
    access_rate: str
    drop_rate: str
    handover_rate: str
    interference: str

    def values(self) -> list[str]:
        return list(astuple(self))

    def as_dict(self) -> dict[str, str]:
        return dict(zip(OUTPUT_COLUMNS, self.values()))


def bucket_to_row(bucket: AggBucket, time: str | None = None, network: str | None = None) -> OutputRow:
    formatted: dict[str, str] = {}
    for _column, attr in SUM_FIELDS:
        formatted[attr] = format_number(getattr(bucket, attr))
    for _column, attr in AVERAGE_FIELDS:
        mean = getattr(bucket, attr)
        formatted[attr] = format_average(mean.total, mean.count)
    return OutputRow(
        time=bucket.date if time is None else time,
        network=bucket.network if network is None else network,
        **formatted,
    )


def _sort_key(bucket: AggBucket) -> tuple[str, str]:
    return (bucket.date, bucket.network)


def build_output_rows(
    buckets: Iterable[AggBucket],
    options: AggregationOptions | None = None,
) -> list[OutputRow]:
    """
    Order buckets by (day, network) and lay out detail, subtotal and total rows.

    With daily subtotals each day opens with a blank-network subtotal row
    followed by its detail rows; the grand total, when asked for, is last.
    """
    options = options or AggregationOptions()
    ordered = sorted(buckets, key=_sort_key)
    rows: list[OutputRow] = []

    if not options.include_daily_subtotal_rows:
        rows.extend(bucket_to_row(bucket) for bucket in ordered)
    else:
        for day, group in groupby(ordered, key=lambda bucket: bucket.date):
            day_buckets = list(group)
            rows.append(bucket_to_row(AggBucket.merged(day_buckets, date=day), time=day, network=""))
            detail_time = "" if options.blank_date_for_detail_rows_when_subtotal_enabled else day
            for bucket in day_buckets:
                rows.append(bucket_to_row(bucket, time=detail_time))

    if options.include_grand_total_row:
        grand = AggBucket.merged(ordered)
        rows.append(bucket_to_row(grand, time=GRAND_TOTAL_LABEL, network=""))

    return rows


def to_preview_rows(rows: list[OutputRow], max_rows: int = PREVIEW_RESULT_ROWS) -> list[list[str]]:
    return [list(OUTPUT_COLUMNS)] + [row.values() for row in rows[:max_rows]]
