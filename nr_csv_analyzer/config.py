"""JSON config file for output layout options."""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path

from nr_csv_analyzer.errors import ConfigError
from nr_csv_analyzer.report import AggregationOptions

DEFAULT_CONFIG_NAME = "nr-csv-analyzer.json"
DEFAULT_CONFIG_TEXT = """{
  "include_daily_subtotal_rows": false,
  "include_grand_total_row": false,
  "blank_date_for_detail_rows_when_subtotal_enabled": true
}
"""


def load_options(path: "str | Path") -> AggregationOptions:
    config_path = Path(path)
    if config_path.suffix.lower() != ".json":
        raise ConfigError(f"Config must be a .json file: {config_path}")
    try:
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {config_path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {config_path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError(f"Config root must be an object, got {type(payload).__name__}")
    return AggregationOptions.from_mapping(payload)


def merge_options(base: AggregationOptions, **overrides: bool | None) -> AggregationOptions:
    """Apply command-line overrides; None leaves the base value alone."""
    changes = {key: value for key, value in overrides.items() if value is not None}
    return AggregationOptions.from_mapping({**asdict(base), **changes})


def write_default_config(path: "str | Path") -> Path:
    config_path = Path(path)
    if config_path.exists():
        raise ConfigError(f"Refusing to overwrite existing config: {config_path}")
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(DEFAULT_CONFIG_TEXT, encoding="utf-8")
    return config_path
