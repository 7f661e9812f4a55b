from __future__ import annotations

import json
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))
sys.path.insert(0, str(ROOT / "tests"))

from kpi_fixtures import HEADER, kpi_row, scenario_rows, write_csv
from nr_csv_analyzer import __version__
from nr_csv_analyzer.columns import FLOW_COLUMN, GRAND_TOTAL_LABEL

CLI = [sys.executable, "-m", "nr_csv_analyzer.cli"]
FIXED_STAMP = "20260301T010203Z"


def run_cli(*args: str, env: dict[str, str] | None = None) -> subprocess.CompletedProcess[str]:
    merged_env = dict(os.environ)
    merged_env["NR_CSV_ANALYZER_OUTPUT_STAMP"] = FIXED_STAMP
    merged_env["PYTHONIOENCODING"] = "utf-8"
    if env:
        merged_env.update(env)
    return subprocess.run(
        [*CLI, *args],
        cwd=ROOT,
        capture_output=True,
        text=True,
        encoding="utf-8",
        env=merged_env,
    )


class NrCsvAnalyzerCliTests(unittest.TestCase):
    def test_version_prints_package_version(self):
        proc = run_cli("version")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertEqual(proc.stdout.strip(), __version__)

    def test_missing_subcommand_is_a_usage_error(self):
        proc = run_cli()
        self.assertEqual(proc.returncode, 1)
        self.assertTrue(proc.stderr.strip())

    def test_preview_json_contract(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            source = write_csv(Path(tmpdir) / "kpi.csv", scenario_rows())
            proc = run_cli("preview", str(source), "--json")
            self.assertEqual(proc.returncode, 0, proc.stderr)
            payload = json.loads(proc.stdout)
            self.assertEqual(payload["contract"]["name"], "nr_csv_analyzer.preview")
            self.assertEqual(payload["run_summary"]["command"], "preview")
            self.assertTrue(payload["requiredColumnsFound"])
            self.assertEqual(payload["delimiter"], ",")
            self.assertEqual(payload["previewRows"][0], HEADER)

    def test_preview_with_missing_column_returns_exit_5(self):
        header = [column for column in HEADER if column != FLOW_COLUMN]
        with tempfile.TemporaryDirectory() as tmpdir:
            source = write_csv(Path(tmpdir) / "kpi.csv", [header, kpi_row("2025-01-01", "NSA", header=header)])
            proc = run_cli("preview", str(source))
            self.assertEqual(proc.returncode, 5)
            self.assertIn("Required columns found: no", proc.stderr)
            self.assertIn(FLOW_COLUMN, proc.stderr)

    def test_run_with_subtotals_and_grand_total(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            source = write_csv(Path(tmpdir) / "kpi.csv", scenario_rows())
            proc = run_cli("run", str(source), "--subtotals", "--grand-total", "--json")
            self.assertEqual(proc.returncode, 0, proc.stderr)
            payload = json.loads(proc.stdout)
            self.assertEqual(payload["contract"]["name"], "nr_csv_analyzer.run")
            self.assertTrue(payload["success"])
            self.assertEqual(payload["run_summary"]["metrics"]["processed_rows"], 4)
            self.assertTrue(Path(payload["outputPath"]).exists())
            rows = payload["resultRows"]
            self.assertEqual(rows[1][:2], ["2025-01-01", ""])
            self.assertEqual(rows[2][:2], ["", "NSA"])
            self.assertEqual(rows[-1][0], GRAND_TOTAL_LABEL)

    def test_run_repeat_date_keeps_detail_dates(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            source = write_csv(Path(tmpdir) / "kpi.csv", scenario_rows())
            proc = run_cli("run", str(source), "--subtotals", "--repeat-date", "--json")
            self.assertEqual(proc.returncode, 0, proc.stderr)
            rows = json.loads(proc.stdout)["resultRows"]
            self.assertEqual(rows[2][:2], ["2025-01-01", "NSA"])

    def test_run_reads_options_from_config(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            source = write_csv(Path(tmpdir) / "kpi.csv", scenario_rows())
            config = Path(tmpdir) / "options.json"
            config.write_text('{"includeGrandTotalRow": true}', encoding="utf-8")
            proc = run_cli("run", str(source), "--config", str(config), "--json")
            self.assertEqual(proc.returncode, 0, proc.stderr)
            self.assertEqual(json.loads(proc.stdout)["resultRows"][-1][0], GRAND_TOTAL_LABEL)

    def test_run_human_summary(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            source = write_csv(
                Path(tmpdir) / "kpi.csv",
                [HEADER, kpi_row("invalid-time", "NSA"), kpi_row("2025-01-01", "NSA")],
            )
            proc = run_cli("run", str(source))
            self.assertEqual(proc.returncode, 0, proc.stderr)
            self.assertEqual(proc.stdout, "")
            self.assertIn("Processed rows: 2", proc.stderr)
            self.assertIn("Skipped rows: 1", proc.stderr)
            self.assertIn("Output:", proc.stderr)
            self.assertTrue((Path(tmpdir) / "kpi-统计.csv").exists())

    def test_run_missing_file_returns_exit_1(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            proc = run_cli("run", str(Path(tmpdir) / "absent.csv"))
            self.assertEqual(proc.returncode, 1)
            self.assertIn("FILE_NOT_FOUND", proc.stderr)

    def test_run_missing_columns_returns_exit_5(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            source = write_csv(Path(tmpdir) / "kpi.csv", [["a", "b"], ["1", "2"]])
            proc = run_cli("run", str(source), "--json")
            self.assertEqual(proc.returncode, 5)
            payload = json.loads(proc.stdout)
            self.assertEqual(payload["errorCode"], "MISSING_COLUMNS")

    def test_run_with_broken_config_returns_exit_1(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            source = write_csv(Path(tmpdir) / "kpi.csv", scenario_rows())
            config = Path(tmpdir) / "options.json"
            config.write_text("{oops", encoding="utf-8")
            proc = run_cli("run", str(source), "--config", str(config))
            self.assertEqual(proc.returncode, 1)
            self.assertIn("Invalid JSON", proc.stderr)
            self.assertFalse((Path(tmpdir) / "kpi-统计.csv").exists())

    def test_config_init_writes_once(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            target = Path(tmpdir) / "nr-csv-analyzer.json"
            first = run_cli("config", "init", "--path", str(target))
            self.assertEqual(first.returncode, 0, first.stderr)
            self.assertIn("Config written:", first.stderr)
            self.assertEqual(json.loads(target.read_text(encoding="utf-8"))["include_grand_total_row"], False)

            second = run_cli("config", "init", "--path", str(target))
            self.assertEqual(second.returncode, 1)
            self.assertIn("Refusing to overwrite", second.stderr)


if __name__ == "__main__":
    unittest.main()
