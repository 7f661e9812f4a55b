"""
aggregation.py — streaming per-(day, network) KPI aggregation.

Rows are consumed one at a time from ``iter_source_rows``; memory grows with
the number of distinct (day, network) keys, never with the row count.

Per-row rules:
  - the first record is the header and is never counted
  - an unparseable time drops the row (time counter + skipped)
  - an empty network drops the row (network counter + skipped)
  - otherwise every measure that parses is added to the bucket and every
    measure that does not bumps its own invalid counter; the row still counts
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator

from nr_csv_analyzer.columns import (
    AVERAGE_FIELDS,
    NETWORK_COLUMN,
    OUTPUT_COLUMNS,
    REQUIRED_COLUMNS,
    SUM_FIELDS,
    TIME_COLUMN,
    empty_invalid_field_stats,
)
from nr_csv_analyzer.detection import iter_source_rows
from nr_csv_analyzer.errors import ParseFailedError
from nr_csv_analyzer.text import normalize_header
from nr_csv_analyzer.values import parse_date_to_day, parse_numeric

logger = logging.getLogger(__name__)

BucketKey = tuple[str, str]


@dataclass
class RunningMean:
    total: float = 0.0
    count: int = 0

    def add(self, value: float) -> None:
        self.total += value
        self.count += 1

    @classmethod
    def combine(cls, means: Iterable["RunningMean"]) -> "RunningMean":
        means = list(means)
        return cls(math.fsum(m.total for m in means), sum(m.count for m in means))


@dataclass
class AggBucket:
    """Running sums (traffic, max users) and means (everything else) for one key."""

    date: str
    network: str
    flow: float = 0.0
    max_users: float = 0.0
    ul_prb: RunningMean = field(default_factory=RunningMean)
    dl_prb: RunningMean = field(default_factory=RunningMean)
    ul_rate: RunningMean = field(default_factory=RunningMean)
    dl_rate: RunningMean = field(default_factory=RunningMean)
    access_rate: RunningMean = field(default_factory=RunningMean)
    drop_rate: RunningMean = field(default_factory=RunningMean)
    handover_rate: RunningMean = field(default_factory=RunningMean)
    interference: RunningMean = field(default_factory=RunningMean)

    @property
    def key(self) -> BucketKey:
        return (self.date, self.network)

    @classmethod
    def merged(cls, buckets: Iterable["AggBucket"], date: str = "", network: str = "") -> "AggBucket":
        """
        Field-wise merge of ``buckets`` into a new bucket.

        Sums go through ``math.fsum`` so the result does not depend on the
        order the buckets arrive in.
        """
        buckets = list(buckets)
        result = cls(date=date, network=network)
        for _column, attr in SUM_FIELDS:
            setattr(result, attr, math.fsum(getattr(b, attr) for b in buckets))
        for _column, attr in AVERAGE_FIELDS:
            setattr(result, attr, RunningMean.combine(getattr(b, attr) for b in buckets))
        return result


@dataclass
class AggregationStats:
    buckets: dict[BucketKey, AggBucket] = field(default_factory=dict)
    processed_rows: int = 0
    skipped_rows: int = 0
    invalid_field_stats: dict[str, int] = field(default_factory=empty_invalid_field_stats)


def build_column_index(header: list[str]) -> dict[str, int]:
    """Map each output column to its position in ``header``.

    The first occurrence wins when a normalised name repeats. Every required
    column must be present.
    """
    positions: dict[str, int] = {}
    for idx, cell in enumerate(header):
        positions.setdefault(normalize_header(cell), idx)

    missing = [column for column in REQUIRED_COLUMNS if normalize_header(column) not in positions]
    if missing:
        raise ParseFailedError(
            "Header changed between validation and aggregation; missing: " + ", ".join(missing)
        )
    return {column: positions[normalize_header(column)] for column in OUTPUT_COLUMNS}


def _cell(row: list[str], idx: int) -> str:
    return row[idx] if idx < len(row) else ""


def aggregate_rows(rows: Iterable[list[str]]) -> AggregationStats:
    """Aggregate an iterator of records whose first element is the header."""
    stats = AggregationStats()
    iterator: Iterator[list[str]] = iter(rows)
    header = next(iterator, None)
    if header is None:
        raise ParseFailedError("Source has no header row")
    index = build_column_index(header)
    time_idx = index[TIME_COLUMN]
    network_idx = index[NETWORK_COLUMN]
    invalid = stats.invalid_field_stats

    for row in iterator:
        stats.processed_rows += 1

        day = parse_date_to_day(_cell(row, time_idx))
        if day is None:
            invalid[TIME_COLUMN] += 1
            stats.skipped_rows += 1
            continue

        network = _cell(row, network_idx).strip()
        if not network:
            invalid[NETWORK_COLUMN] += 1
            stats.skipped_rows += 1
            continue

        bucket = stats.buckets.get((day, network))
        if bucket is None:
            bucket = stats.buckets[(day, network)] = AggBucket(date=day, network=network)

        for column, attr in SUM_FIELDS:
            value = parse_numeric(_cell(row, index[column]))
            if value is None:
                invalid[column] += 1
            else:
                setattr(bucket, attr, getattr(bucket, attr) + value)

        for column, attr in AVERAGE_FIELDS:
            value = parse_numeric(_cell(row, index[column]))
            if value is None:
                invalid[column] += 1
            else:
                getattr(bucket, attr).add(value)

    logger.debug(
        "Aggregated %d row(s) into %d bucket(s); skipped %d",
        stats.processed_rows,
        len(stats.buckets),
        stats.skipped_rows,
    )
    return stats


def aggregate_file(path: "str | Path", encoding: str | None, delimiter: str | None) -> AggregationStats:
    """Stream a whole source through ``aggregate_rows``."""
    rows = iter_source_rows(path, encoding, delimiter)
    try:
        return aggregate_rows(rows)
    finally:
        rows.close()
