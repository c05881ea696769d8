import io

import pytest

from iso8211.config import DecoderConfig
from iso8211.errors import MalformedDirectory, MalformedLeader
from iso8211.leader import LEADER_SIZE, parse_directory, parse_leader, read_exact, read_header
from iso_builders import build_record, record_id


def test_read_header_decodes_leader_and_directory():
    data = build_record("D", [("0001", record_id(7)), ("FRID", b"\x00" * 9)])
    header = read_header(io.BytesIO(data))
    assert header is not None
    assert header.leader_id == "D"
    assert header.record_length == len(data)
    assert (header.length_size, header.position_size, header.tag_size) == (3, 4, 4)
    assert [e.tag for e in header.entries] == ["0001", "FRID"]
    assert [(e.length, e.position) for e in header.entries] == [(3, 0), (9, 3)]


def test_entry_count_matches_base_address():
    data = build_record("D", [("0001", record_id(1)), ("ATTF", b"x\x1e"), ("SG2D", b"\x1e")])
    header = read_header(io.BytesIO(data))
    assert header is not None
    expected = (header.base_address - 1 - LEADER_SIZE) / header.entry_width
    assert expected == int(expected)
    assert len(header.entries) == header.entry_count == 3


def test_read_header_returns_none_at_end_of_stream():
    assert read_header(io.BytesIO(b"")) is None


def test_short_leader_is_malformed():
    with pytest.raises(MalformedLeader):
        read_header(io.BytesIO(b"00042 D"))


def test_short_directory_is_malformed():
    data = build_record("D", [("0001", record_id(1))])
    with pytest.raises(MalformedDirectory):
        read_header(io.BytesIO(data[: LEADER_SIZE + 5]))


def test_directory_not_a_multiple_of_entry_width():
    header = parse_leader(build_record("D", [("0001", record_id(1))])[:LEADER_SIZE])
    with pytest.raises(MalformedDirectory):
        parse_directory(b"0001003000\x1e", header)


def test_non_digit_record_length_reads_as_zero_when_lenient():
    raw = bytearray(build_record("D", [("0001", record_id(1))])[:LEADER_SIZE])
    raw[0:5] = b"00X42"
    header = parse_leader(bytes(raw))
    assert header.record_length == 0


def test_non_digit_record_length_raises_when_strict():
    raw = bytearray(build_record("D", [("0001", record_id(1))])[:LEADER_SIZE])
    raw[0:5] = b"00X42"
    with pytest.raises(MalformedLeader):
        parse_leader(bytes(raw), DecoderConfig(strict=True))


def test_strict_accepts_blank_field_control_length():
    raw = build_record("D", [("0001", record_id(1))])[:LEADER_SIZE]
    header = parse_leader(raw, DecoderConfig(strict=True))
    assert header.field_control_length == 0


def test_base_address_inside_leader_is_malformed():
    raw = bytearray(build_record("D", [("0001", record_id(1))])[:LEADER_SIZE])
    raw[12:17] = b"00020"
    with pytest.raises(MalformedLeader):
        parse_leader(bytes(raw))


def test_non_digit_entry_map_is_malformed():
    raw = bytearray(build_record("D", [("0001", record_id(1))])[:LEADER_SIZE])
    raw[23:24] = b"x"
    with pytest.raises(MalformedLeader):
        parse_leader(bytes(raw))


class _Trickle(io.RawIOBase):
    """Stream that hands out at most two bytes per read call."""

    def __init__(self, data: bytes) -> None:
        self._buf = io.BytesIO(data)

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        return self._buf.read(min(size, 2) if size >= 0 else 2)


def test_read_exact_loops_over_partial_reads():
    source = _Trickle(b"abcdefg")
    assert read_exact(source, 5) == b"abcde"
    assert read_exact(source, 5) == b"fg"


def test_non_digit_directory_numbers_read_as_zero_when_lenient():
    header = parse_leader(build_record("D", [("0001", record_id(1))])[:LEADER_SIZE])
    entries = parse_directory(b"0001" + b"0X3" + b"00 7" + b"\x1e", header)
    assert [(e.tag, e.length, e.position) for e in entries] == [("0001", 0, 0)]


@pytest.mark.parametrize("entry", [b"00010X30000", b"0001003000X"])
def test_non_digit_directory_numbers_raise_when_strict(entry):
    strict = DecoderConfig(strict=True)
    header = parse_leader(build_record("D", [("0001", record_id(1))])[:LEADER_SIZE], strict)
    with pytest.raises(MalformedDirectory):
        parse_directory(entry + b"\x1e", header, strict)
