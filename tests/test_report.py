from __future__ import annotations

import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))
sys.path.insert(0, str(ROOT / "tests"))

from kpi_fixtures import HEADER, kpi_row, scenario_rows
from nr_csv_analyzer.aggregation import aggregate_rows
from nr_csv_analyzer.columns import GRAND_TOTAL_LABEL, NETWORK_COLUMN, OUTPUT_COLUMNS
from nr_csv_analyzer.errors import ConfigError
from nr_csv_analyzer.report import (
    AggregationOptions,
    build_output_rows,
    to_preview_rows,
)

AVERAGES = ["30", "30", "30", "30", "30", "30", "30", "30"]


def scenario_buckets():
    return aggregate_rows(scenario_rows()).buckets.values()


class DetailRowTests(unittest.TestCase):
    def test_rows_are_sorted_by_day_then_network(self):
        rows = build_output_rows(scenario_buckets())
        self.assertEqual(
            [(row.time, row.network) for row in rows],
            [
                ("2025-01-01", "NSA"),
                ("2025-01-01", "SA"),
                ("2025-01-02", "NSA"),
                ("2025-01-02", "SA"),
            ],
        )
        self.assertEqual(rows[0].values(), ["2025-01-01", "NSA", "10", "100"] + ["20"] * 8)

    def test_grand_total_without_subtotals(self):
        rows = build_output_rows(scenario_buckets(), AggregationOptions(include_grand_total_row=True))
        self.assertEqual(len(rows), 5)
        self.assertEqual(rows[-1].values(), [GRAND_TOTAL_LABEL, "", "50", "180"] + ["35"] * 8)

    def test_bucket_with_no_valid_averages_prints_blank(self):
        stats = aggregate_rows([HEADER, kpi_row("2025-01-01", "NSA", "3", "4", "n/a")])
        (row,) = build_output_rows(stats.buckets.values())
        self.assertEqual(row.values(), ["2025-01-01", "NSA", "3", "4"] + [""] * 8)

    def test_as_dict_is_keyed_by_output_column(self):
        (row, *_rest) = build_output_rows(scenario_buckets())
        self.assertEqual(list(row.as_dict()), list(OUTPUT_COLUMNS))
        self.assertEqual(row.as_dict()[NETWORK_COLUMN], "NSA")


class SubtotalLayoutTests(unittest.TestCase):
    def test_daily_subtotals_and_grand_total(self):
        options = AggregationOptions(include_daily_subtotal_rows=True, include_grand_total_row=True)
        rows = [row.values() for row in build_output_rows(scenario_buckets(), options)]
        self.assertEqual(
            rows,
            [
                ["2025-01-01", "", "30", "150"] + AVERAGES,
                ["", "NSA", "10", "100"] + ["20"] * 8,
                ["", "SA", "20", "50"] + ["40"] * 8,
                ["2025-01-02", "", "20", "30"] + ["40"] * 8,
                ["", "NSA", "5", "10"] + AVERAGES,
                ["", "SA", "15", "20"] + ["50"] * 8,
                [GRAND_TOTAL_LABEL, "", "50", "180"] + ["35"] * 8,
            ],
        )

    def test_grand_total_equals_sum_of_subtotals(self):
        options = AggregationOptions(include_daily_subtotal_rows=True, include_grand_total_row=True)
        rows = build_output_rows(scenario_buckets(), options)
        subtotals = [row for row in rows if row.network == "" and row.time != GRAND_TOTAL_LABEL]
        grand = rows[-1]
        self.assertEqual(float(grand.flow), sum(float(row.flow) for row in subtotals))
        self.assertEqual(float(grand.max_users), sum(float(row.max_users) for row in subtotals))

    def test_detail_rows_can_keep_their_date(self):
        options = AggregationOptions(
            include_daily_subtotal_rows=True,
            blank_date_for_detail_rows_when_subtotal_enabled=False,
        )
        rows = build_output_rows(scenario_buckets(), options)
        self.assertEqual([row.time for row in rows], ["2025-01-01"] * 3 + ["2025-01-02"] * 3)
        self.assertEqual([row.network for row in rows], ["", "NSA", "SA", "", "NSA", "SA"])

    def test_no_buckets_gives_only_an_empty_grand_total(self):
        rows = build_output_rows([], AggregationOptions(include_daily_subtotal_rows=True, include_grand_total_row=True))
        self.assertEqual(rows[0].values(), [GRAND_TOTAL_LABEL, "", "0", "0"] + [""] * 8)


class OptionsTests(unittest.TestCase):
    def test_defaults(self):
        options = AggregationOptions.from_mapping(None)
        self.assertFalse(options.include_daily_subtotal_rows)
        self.assertFalse(options.include_grand_total_row)
        self.assertTrue(options.blank_date_for_detail_rows_when_subtotal_enabled)

    def test_camel_case_keys_are_accepted(self):
        options = AggregationOptions.from_mapping(
            {"includeDailySubtotalRows": True, "blankDateForDetailRowsWhenSubtotalEnabled": False}
        )
        self.assertTrue(options.include_daily_subtotal_rows)
        self.assertFalse(options.blank_date_for_detail_rows_when_subtotal_enabled)

    def test_unknown_and_non_boolean_values_are_rejected(self):
        with self.assertRaises(ConfigError):
            AggregationOptions.from_mapping({"includeEverything": True})
        with self.assertRaises(ConfigError):
            AggregationOptions.from_mapping({"include_grand_total_row": "yes"})


class PreviewRowsTests(unittest.TestCase):
    def test_preview_is_header_plus_capped_rows(self):
        rows = build_output_rows(scenario_buckets())
        preview = to_preview_rows(rows, max_rows=2)
        self.assertEqual(preview[0], list(OUTPUT_COLUMNS))
        self.assertEqual(len(preview), 3)


if __name__ == "__main__":
    unittest.main()
