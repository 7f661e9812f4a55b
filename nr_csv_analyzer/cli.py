from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from nr_csv_analyzer import __version__ as TOOL_VERSION
from nr_csv_analyzer.config import DEFAULT_CONFIG_NAME, load_options, merge_options, write_default_config
from nr_csv_analyzer.contracts import build_payload, build_run_summary
from nr_csv_analyzer.errors import (
    ERROR_MISSING_COLUMNS,
    ERROR_PARSE_FAILED,
    ConfigError,
)
from nr_csv_analyzer.report import AggregationOptions
from nr_csv_analyzer.service import AggregationRunResult, run_csv_aggregation
from nr_csv_analyzer.validation import ValidationResult, preview_and_validate_csv

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_VALIDATE_FAILED = 5

DELIMITER_NAMES = {",": "comma", ";": "semicolon", "\t": "tab", "|": "pipe"}


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class AnalyzerArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def configure_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    logging.basicConfig(
        stream=sys.stderr,
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
    )


def describe_delimiter(delimiter: str | None) -> str:
    if delimiter is None:
        return "[workbook]"
    return DELIMITER_NAMES.get(delimiter, repr(delimiter))


def render_preview_text(path: Path, result: ValidationResult) -> str:
    lines = [
        "nr-csv-analyzer preview",
        f"File: {path}",
        f"Format: {result.source_format}",
        f"Encoding: {result.encoding or '[workbook]'}",
        f"Delimiter: {describe_delimiter(result.delimiter)}",
        f"Preview rows: {max(len(result.preview_rows) - 1, 0)}",
        f"Required columns found: {'yes' if result.required_columns_found else 'no'}",
    ]
    if result.missing_columns:
        lines.append("Missing columns:")
        lines.extend(f"  - {column}" for column in result.missing_columns)
    if result.message:
        lines.append(f"Note: {result.message}")
    return "\n".join(lines) + "\n"


def render_run_text(path: Path, result: AggregationRunResult) -> str:
    lines = [
        "nr-csv-analyzer run",
        f"File: {path}",
        f"Status: {'ok' if result.success else result.error_code}",
        f"Processed rows: {result.processed_rows}",
        f"Skipped rows: {result.skipped_rows}",
    ]
    invalid = {name: count for name, count in result.invalid_field_stats.items() if count}
    if invalid:
        lines.append("Invalid values:")
        lines.extend(f"  - {name}: {count}" for name, count in invalid.items())
    if result.missing_columns:
        lines.append("Missing columns:")
        lines.extend(f"  - {column}" for column in result.missing_columns)
    if result.output_path:
        lines.append(f"Output: {result.output_path}")
    if result.message:
        lines.append(f"Message: {result.message}")
    return "\n".join(lines) + "\n"


def exit_code_for_run(result: AggregationRunResult) -> int:
    if result.success:
        return EXIT_SUCCESS
    if result.error_code == ERROR_MISSING_COLUMNS:
        return EXIT_VALIDATE_FAILED
    if result.error_code == ERROR_PARSE_FAILED:
        return EXIT_PARSE_FAILED
    return EXIT_COMMAND_ERROR


def build_parser() -> argparse.ArgumentParser:
    parser = AnalyzerArgumentParser(
        prog="nr-csv-analyzer",
        description="Summarise 5G cell KPI exports per day and network.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    preview = subparsers.add_parser("preview", help="Detect encoding/delimiter and check required columns.")
    preview.add_argument("input", help="Input file path")
    preview.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    preview.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    preview.add_argument("-v", "--verbose", action="store_true", help="More human logs")

    run = subparsers.add_parser("run", help="Aggregate a file and write the -统计 summary beside it.")
    run.add_argument("input", help="Input file path")
    run.add_argument("--config", help=f"Options file (see 'config init'; default name {DEFAULT_CONFIG_NAME})")
    run.add_argument("--subtotals", dest="subtotals", action="store_true", default=None, help="Add a subtotal row per day")
    run.add_argument("--grand-total", dest="grand_total", action="store_true", default=None, help="Append a grand-total row")
    run.add_argument(
        "--repeat-date",
        dest="repeat_date",
        action="store_true",
        default=None,
        help="Keep the date on detail rows when subtotals are on",
    )
    run.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    run.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    run.add_argument("-v", "--verbose", action="store_true", help="More human logs")

    config = subparsers.add_parser("config", help="Generate configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write a starter config file.")
    config_init.add_argument("--path", default=DEFAULT_CONFIG_NAME, help="Config output path")

    subparsers.add_parser("version", help="Print version")
    return parser


def maybe_emit_json_stdout(payload: Any, enabled: bool) -> None:
    if enabled:
        print(json_dumps(payload))


def resolve_options(args: argparse.Namespace) -> AggregationOptions:
    base = load_options(args.config) if args.config else AggregationOptions()
    return merge_options(
        base,
        include_daily_subtotal_rows=args.subtotals,
        include_grand_total_row=args.grand_total,
        blank_date_for_detail_rows_when_subtotal_enabled=False if args.repeat_date else None,
    )


def run_preview(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    result = preview_and_validate_csv(input_path)
    if args.json:
        summary = build_run_summary(
            command="preview",
            input_path=input_path,
            status="ok" if result.required_columns_found else "invalid",
            metrics={"missing_columns": len(result.missing_columns)},
        )
        maybe_emit_json_stdout(build_payload("nr_csv_analyzer.preview", result.to_dict(), summary), True)
    else:
        emit_human(render_preview_text(input_path, result).rstrip(), quiet=args.quiet)
    return EXIT_SUCCESS if result.required_columns_found else EXIT_VALIDATE_FAILED


def run_aggregate(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    try:
        options = resolve_options(args)
    except ConfigError as exc:
        raise CliError(str(exc), EXIT_COMMAND_ERROR) from exc

    result = run_csv_aggregation(input_path, options)
    if args.json:
        summary = build_run_summary(
            command="run",
            input_path=input_path,
            status="ok" if result.success else "failed",
            output_path=Path(result.output_path) if result.output_path else None,
            metrics={
                "processed_rows": result.processed_rows,
                "skipped_rows": result.skipped_rows,
                "invalid_values": sum(result.invalid_field_stats.values()),
            },
        )
        maybe_emit_json_stdout(build_payload("nr_csv_analyzer.run", result.to_dict(), summary), True)
    else:
        emit_human(render_run_text(input_path, result).rstrip(), quiet=args.quiet and result.success)
    return exit_code_for_run(result)


def run_config_init(args: argparse.Namespace) -> int:
    try:
        config_path = write_default_config(args.path)
    except ConfigError as exc:
        eprint(str(exc))
        return EXIT_COMMAND_ERROR
    emit_human(f"Config written: {config_path}")
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.command in {"preview", "run"}:
            configure_logging(verbose=args.verbose, quiet=args.quiet or args.json)
        if args.command == "preview":
            return run_preview(args)
        if args.command == "run":
            return run_aggregate(args)
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
