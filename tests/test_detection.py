from __future__ import annotations

import sys
import tempfile
import unittest
from datetime import datetime
from pathlib import Path

import openpyxl

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))
sys.path.insert(0, str(ROOT / "tests"))

from kpi_fixtures import HEADER, kpi_row, write_csv
from nr_csv_analyzer.detection import (
    detect_delimiter,
    detect_source,
    detect_text_file,
    iter_source_rows,
    normalize_encoding_name,
    read_file_head,
    source_format,
)
from nr_csv_analyzer.text import normalize_header


class DelimiterDetectionTests(unittest.TestCase):
    def test_picks_the_consistent_delimiter(self):
        self.assertEqual(detect_delimiter("a;b;c\n1;2;3\n4;5;6\n"), ";")
        self.assertEqual(detect_delimiter("a\tb\n1\t2\n"), "\t")
        self.assertEqual(detect_delimiter("a|b|c\n1|2|3\n"), "|")
        self.assertEqual(detect_delimiter("a,b\n1,2\n"), ",")

    def test_single_column_text_falls_back_to_comma(self):
        self.assertEqual(detect_delimiter("only\none\ncolumn\n"), ",")
        self.assertEqual(detect_delimiter(""), ",")

    def test_ties_go_to_the_earlier_candidate(self):
        self.assertEqual(detect_delimiter("a,b;c\n1,2;3\n"), ",")


class EncodingNameTests(unittest.TestCase):
    def test_known_guesses_are_remapped(self):
        self.assertEqual(normalize_encoding_name("ascii"), "utf-8")
        self.assertEqual(normalize_encoding_name("GB2312"), "gb18030")
        self.assertEqual(normalize_encoding_name("Windows-1252"), "utf-8")

    def test_other_guesses_pass_through_lowercased(self):
        self.assertEqual(normalize_encoding_name("UTF-16"), "utf-16")
        self.assertEqual(normalize_encoding_name("Big5"), "big5")

    def test_no_guess_means_utf8(self):
        self.assertEqual(normalize_encoding_name(None), "utf-8")
        self.assertEqual(normalize_encoding_name(""), "utf-8")


class ReadFileHeadTests(unittest.TestCase):
    def test_line_limit_keeps_only_complete_lines(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "lines.csv"
            path.write_bytes(b"".join(f"line{i}\n".encode() for i in range(10)))
            self.assertEqual(read_file_head(path, max_lines=3), b"line0\nline1\nline2\n")

    def test_byte_limit_drops_the_trailing_partial_line(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "bytes.csv"
            path.write_bytes(b"abc\ndefgh\nij\n")
            self.assertEqual(read_file_head(path, max_bytes=8), b"abc\n")

    def test_whole_small_file_is_returned_even_without_final_newline(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "small.csv"
            path.write_bytes(b"a\nb")
            self.assertEqual(read_file_head(path, max_lines=5), b"a\nb")


class TextDetectionTests(unittest.TestCase):
    def test_ascii_semicolon_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "plain.csv"
            path.write_bytes(b"a;b\n1;2\n")
            detection = detect_text_file(path)
            self.assertEqual(detection.encoding, "utf-8")
            self.assertEqual(detection.delimiter, ";")
            self.assertEqual(detection.preview_rows, [["a", "b"], ["1", "2"]])
            self.assertEqual(detection.source_format, "delimited")

    def test_gb18030_export_decodes_the_header(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "kpi.csv"
            rows = [HEADER] + [kpi_row(f"2025-01-0{day} 08:00:00", "NSA") for day in range(1, 6)]
            write_csv(path, rows, encoding="gb18030")
            detection = detect_text_file(path)
            self.assertIn(detection.encoding, {"gb18030", "gbk"})
            self.assertEqual(detection.delimiter, ",")
            self.assertEqual(detection.preview_rows[0], HEADER)
            self.assertEqual(len(detection.preview_rows), 6)

    def test_utf8_bom_does_not_leak_into_the_header(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "bom.csv"
            write_csv(path, [HEADER, kpi_row("2025-01-01", "SA")], encoding="utf-8-sig")
            detection = detect_text_file(path)
            self.assertEqual(normalize_header(detection.preview_rows[0][0]), HEADER[0])

    def test_preview_is_capped_at_header_plus_one_hundred_rows(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "long.csv"
            rows = [["a", "b"]] + [[str(i), str(i * 2)] for i in range(150)]
            write_csv(path, rows)
            detection = detect_text_file(path)
            self.assertEqual(len(detection.preview_rows), 101)
            self.assertEqual(detection.preview_rows[-1], ["99", "198"])


class WorkbookSourceTests(unittest.TestCase):
    def test_source_format_by_extension(self):
        self.assertEqual(source_format("export.CSV"), "delimited")
        self.assertEqual(source_format("export.txt"), "delimited")
        self.assertEqual(source_format("export.xlsx"), "xlsx")
        self.assertEqual(source_format("export.xlsm"), "xlsx")
        self.assertEqual(source_format("export.XLS"), "xls")
        self.assertEqual(source_format("export.ods"), "ods")

    def test_xlsx_rows_are_rendered_as_text(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "kpi.xlsx"
            wb = openpyxl.Workbook()
            ws = wb.active
            ws.append(HEADER)
            ws.append([datetime(2025, 1, 1, 8, 0), "1", "NSA", "cell", 10.0, 100] + [2.5] * 8)
            ws.append([None] * len(HEADER))
            wb.save(path)

            rows = list(iter_source_rows(path))
            self.assertEqual(len(rows), 2)
            self.assertEqual(rows[0], HEADER)
            self.assertEqual(rows[1][:6], ["2025-01-01 08:00:00", "1", "NSA", "cell", "10", "100"])
            self.assertEqual(rows[1][6], "2.5")

            detection = detect_source(path)
            self.assertIsNone(detection.encoding)
            self.assertIsNone(detection.delimiter)
            self.assertEqual(detection.source_format, "xlsx")
            self.assertEqual(detection.preview_rows[0], HEADER)


if __name__ == "__main__":
    unittest.main()
