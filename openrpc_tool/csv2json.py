"""Turn delimited text with a header row into a JSON array of records."""

from __future__ import annotations

import csv
import json
from typing import Dict, List, TextIO

from .errors import ToolError


def parse_delimiter(value: str) -> str:
    if len(value) != 1 or not value.isascii():
        raise ToolError(f"delimiter must be a single ASCII character, got {value!r}")
    return value


def read_records(stream: TextIO, delimiter: str = "\t") -> List[Dict[str, str]]:
    """Read records, dropping fields whose value is empty."""
    reader = csv.DictReader(stream, delimiter=parse_delimiter(delimiter))
    records: List[Dict[str, str]] = []
    for row in reader:
        if None in row or None in row.values():
            raise ToolError(
                f"line {reader.line_num}: expected {len(reader.fieldnames or [])} fields like the header"
            )
        records.append({key: value for key, value in row.items() if value})
    return records


def convert(source: TextIO, sink: TextIO, delimiter: str = "\t") -> int:
    records = read_records(source, delimiter)
    json.dump(records, sink, indent=2, sort_keys=True, ensure_ascii=False)
    sink.write("\n")
    return len(records)
