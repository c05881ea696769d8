import io
from pathlib import Path

import orjson
import pyarrow.ipc as pa_ipc

from iso8211.export import catalog_to_dict, records_to_arrow, records_to_json, records_to_jsonl
from iso8211.records import Iso8211Reader
from iso_builders import FT, LEAD_FIELDS, build_record, sample_file


def _records():
    return list(Iso8211Reader(io.BytesIO(sample_file())))


def test_records_to_json_keeps_tags_and_values():
    payload = orjson.loads(records_to_json(_records()))
    assert len(payload) == 2
    second = payload[1]
    assert second["record_index"] == 1
    frid = second["fields"][1]
    assert frid["tag"] == "FRID"
    assert frid["name"] == "Feature record identifier field"
    assert [s["value"] for s in frid["subfields"]] == [550, 1234567, 1]
    assert frid["subfields"][0] == {"tag": "AGEN", "kind": "uint16", "value": 550}


def test_raw_payload_is_hex_encoded():
    data = build_record("L", LEAD_FIELDS) + build_record("D", [("VRPT", b"\xab\xcd" + FT)])
    records = list(Iso8211Reader(io.BytesIO(data)))
    payload = orjson.loads(records_to_json(records))
    field = payload[0]["fields"][0]
    assert field["name"] is None
    assert field["subfields"] == [{"tag": "", "kind": "bytes", "value": "abcd"}]


def test_records_to_jsonl(tmp_path: Path) -> None:
    path = tmp_path / "out" / "cell.jsonl"
    assert records_to_jsonl(_records(), path) == 2
    lines = path.read_bytes().splitlines()
    assert len(lines) == 2
    assert orjson.loads(lines[0])["fields"][1]["tag"] == "DSID"


def test_records_to_arrow(tmp_path: Path) -> None:
    path = tmp_path / "cell.arrow"
    rows = records_to_arrow(_records(), path)
    assert rows == 6
    with pa_ipc.open_file(path) as reader:
        table = reader.read_all()
    assert table.num_rows == 6
    assert table.column("tag").to_pylist() == ["0001", "DSID", "0001", "FRID", "SG2D", "ATTF"]
    assert table.column("subfield_tags").to_pylist()[4] == ["YCOO", "XCOO", "YCOO", "XCOO"]
    assert orjson.loads(table.column("values").to_pylist()[5]) == [116, "Buoy", 75, "3"]


def test_catalog_to_dict_lists_every_field_type():
    lead = Iso8211Reader(io.BytesIO(sample_file())).lead
    catalog = catalog_to_dict(lead)
    assert [entry["tag"] for entry in catalog] == ["0000", "0001", "DSID", "FRID", "SG2D", "ATTF"]
    assert catalog[4]["array_descriptor"] == "*YCOO!XCOO"
