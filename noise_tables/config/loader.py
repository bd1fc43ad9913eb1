from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import OperationsConfig, OutputsConfig, RunConfig, SummaryShape
from ..models.file_category import FileCategory
from ..models.labels import DEFAULT_LABELS

"""Run configuration loader.

Responsibilities:
- Load the YAML run file (config/run.yml by default)
- Validate it against the bundled run_config_schema.json
- Build the typed RunConfig (defaults for every missing key)
"""

__all__ = [
    "ConfigError",
    "SCHEMA_PATH",
    "DEFAULT_CONFIG_PATH",
    "build_run_config",
    "load_config",
]

SCHEMA_PATH = Path(__file__).with_name("run_config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/run.yml")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or invalid, or the data
            fails validation (unknown keys, wrong types, unknown categories)
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path)
        where = f" at '{location}'" if location else ""
        raise ConfigError(f"config validation failed{where}: {e.message}") from e


def build_run_config(data: dict[str, Any]) -> RunConfig:
    """Validate a parsed config mapping and build the RunConfig."""
    _validate_config_schema(data)

    ops_raw = data.get("operations", {})
    out_raw = data.get("outputs", {})
    try:
        labels = DEFAULT_LABELS.with_overrides(data.get("labels"))
        re.compile(labels.point_name_pattern)
    except (ValueError, re.error) as e:
        raise ConfigError(f"invalid labels: {e}") from e

    categories = tuple(FileCategory)
    if "categories" in data:
        wanted = {FileCategory.from_key(k) for k in data["categories"]}
        categories = tuple(c for c in FileCategory if c in wanted)

    return RunConfig(
        source_directory=data.get("source_directory"),
        operations=OperationsConfig(
            remove_required_isolation=ops_raw.get("remove_required_isolation", False),
            move_barrier_isolation=ops_raw.get("move_barrier_isolation", False),
            correction_value=ops_raw.get("correction_value"),
        ),
        outputs=OutputsConfig(
            point_list=out_raw.get("point_list", False),
            summary_table=out_raw.get("summary_table", False),
            summary_shape=SummaryShape(out_raw.get("summary_shape", "pivot")),
        ),
        categories=categories,
        labels=labels,
        barrier_offset=ops_raw.get("barrier_offset", 3),
    )


def load_config(path: Path) -> RunConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")
    return build_run_config(data)
