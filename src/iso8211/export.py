"""Flatten decoded records for JSON, JSONL and Arrow consumers."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import orjson
import pyarrow as pa

from iso8211.records import DataRecord, Field, LeadRecord


def _plain(value: int | str | bytes) -> int | str:
    # bytes are not JSON-native; hex keeps them lossless and readable
    if isinstance(value, bytes):
        return value.hex()
    return value


def field_to_dict(field: Field) -> dict[str, Any]:
    return {
        "tag": field.tag,
        "name": field.field_type.name if field.field_type else None,
        "subfields": [
            {"tag": sub.tag, "kind": sub.kind.value, "value": _plain(sub.value)}
            for sub in field.subfields
        ],
    }


def record_to_dict(record: DataRecord, index: int) -> dict[str, Any]:
    return {
        "record_index": index,
        "record_length": record.header.record_length,
        "fields": [field_to_dict(f) for f in record.fields],
    }


def catalog_to_dict(lead: LeadRecord) -> list[dict[str, Any]]:
    return [
        {
            "tag": ft.tag,
            "name": ft.name,
            "data_structure": ft.data_structure,
            "data_type": ft.data_type,
            "array_descriptor": ft.array_descriptor,
            "format_controls": ft.format_controls,
        }
        for ft in lead.field_types.values()
    ]


def records_to_json(records: Iterable[DataRecord], indent: bool = False) -> bytes:
    payload = [record_to_dict(r, i) for i, r in enumerate(records)]
    return orjson.dumps(payload, option=orjson.OPT_INDENT_2 if indent else None)


def records_to_jsonl(records: Iterable[DataRecord], path: Path) -> int:
    """Write one JSON object per record; returns the number written."""
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open("wb") as f:
        for index, record in enumerate(records):
            f.write(orjson.dumps(record_to_dict(record, index)) + b"\n")
            count += 1
    return count


def records_to_arrow(records: Iterable[DataRecord], path: Path) -> int:
    """Write an Arrow IPC file with one row per field; returns the row count."""
    path.parent.mkdir(parents=True, exist_ok=True)
    columns: dict[str, list[Any]] = {
        "record_index": [],
        "tag": [],
        "name": [],
        "subfield_tags": [],
        "values": [],
    }
    for index, record in enumerate(records):
        for f in record.fields:
            columns["record_index"].append(index)
            columns["tag"].append(f.tag)
            columns["name"].append(f.field_type.name if f.field_type else None)
            columns["subfield_tags"].append([sub.tag for sub in f.subfields])
            # mixed value types per row; store as JSON to keep the schema simple
            columns["values"].append(orjson.dumps([_plain(v) for v in f.values]).decode())

    table = pa.table(
        {
            "record_index": pa.array(columns["record_index"], type=pa.int64()),
            "tag": pa.array(columns["tag"], type=pa.string()),
            "name": pa.array(columns["name"], type=pa.string()),
            "subfield_tags": pa.array(columns["subfield_tags"], type=pa.list_(pa.string())),
            "values": pa.array(columns["values"], type=pa.string()),
        }
    )
    with pa.OSFile(str(path), "wb") as sink:
        with pa.ipc.new_file(sink, table.schema) as writer:
            writer.write_table(table)
    return table.num_rows
