from __future__ import annotations

import json
import pathlib

import jsonschema
import pytest

from noise_tables.errors import InvalidRowIndex, IOFailure, MalformedElevation, UnsupportedFile
from noise_tables.logging.error_log import ErrorLogBuffer
from noise_tables.models.error_record import ErrorRecord

"""Skipped file log JSON schema contract."""

SCHEMA_PATH = pathlib.Path(__file__).with_name("error_log_schema.json")


@pytest.fixture(scope="module")
def schema() -> dict:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


@pytest.mark.parametrize(
    "exc",
    [
        IOFailure("cannot read a.xlsx"),
        UnsupportedFile("file matches no known category: a.xlsx"),
        InvalidRowIndex(7, "past last row 3"),
        MalformedElevation("no elevation field"),
        KeyError("boom"),
    ],
)
def test_records_match_schema(schema, exc):
    record = ErrorRecord.from_exception("a.xlsx", "SHEET2", exc)
    jsonschema.validate(json.loads(record.to_json_line()), schema)


def test_schema_rejects_extra_key(schema):
    data = json.loads(ErrorRecord.create("a.xlsx", "SHEET2", 4, "IO_FAILURE", "x").to_json_line())
    data["extra"] = "not allowed"
    with pytest.raises(jsonschema.exceptions.ValidationError):
        jsonschema.validate(data, schema)


def test_flushed_file_lines_match_schema(schema, tmp_path: pathlib.Path):
    buf = ErrorLogBuffer(tmp_path)
    buf.append(ErrorRecord.create("a.xlsx", "SHEET2", -1, "MISSING_SHEET", "sheet 'SHEET2' not found"))
    buf.append(ErrorRecord.create("b.xls", "", 12, "IO_FAILURE", "cannot read b.xls"))
    path = buf.flush()
    for line in path.read_text(encoding="utf-8").splitlines():
        jsonschema.validate(json.loads(line), schema)
