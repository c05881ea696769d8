"""Leader and directory decoding shared by every ISO 8211 record.

Leader layout (24 ASCII bytes):
- 0-4   record length
- 5     interchange level
- 6     leader identifier ('L' lead record, 'D' data record)
- 7     in-line code extension
- 8     version
- 9     application indicator
- 10-11 field control length
- 12-16 base address of field area
- 17-19 extended character set indicator
- 20-23 entry map: size of field length, size of field position, reserved, size of field tag

The directory that follows holds one (tag, length, position) entry per field
and ends with a field terminator, so it spans ``base_address - 24`` bytes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import BinaryIO

from iso8211.config import DecoderConfig
from iso8211.errors import MalformedDirectory, MalformedLeader

LEADER_SIZE = 24
FIELD_TERMINATOR = 0x1E
UNIT_TERMINATOR = 0x1F


@dataclass
class DirectoryEntry:
    tag: str
    length: int
    position: int


@dataclass
class RecordHeader:
    record_length: int
    interchange_level: str
    leader_id: str
    inline_code: str
    version: str
    application_indicator: str
    field_control_length: int
    base_address: int
    extended_charset: str
    length_size: int
    position_size: int
    tag_size: int
    entries: list[DirectoryEntry] = field(default_factory=list)

    @property
    def entry_width(self) -> int:
        return self.tag_size + self.length_size + self.position_size

    @property
    def entry_count(self) -> int:
        return (self.base_address - 1 - LEADER_SIZE) // self.entry_width


def read_exact(source: BinaryIO, size: int) -> bytes:
    """Read up to ``size`` bytes, looping over partial reads until EOF."""
    chunks: list[bytes] = []
    remaining = size
    while remaining > 0:
        chunk = source.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def _parse_number(raw: bytes, strict: bool, error: type[Exception], what: str) -> int:
    if raw.isdigit():
        return int(raw)
    # data record leaders leave the field control length blank
    if strict and raw.strip(b" "):
        raise error(f"{what} is not a decimal number: {raw!r}")
    return 0


def _parse_size(raw: int, what: str) -> int:
    if not 0x30 <= raw <= 0x39:
        raise MalformedLeader(f"{what} is not a digit: {chr(raw)!r}")
    return raw - 0x30


def parse_leader(raw: bytes, config: DecoderConfig | None = None) -> RecordHeader:
    """Decode a 24-byte leader; the directory entries are left empty."""
    cfg = config or DecoderConfig()
    if len(raw) != LEADER_SIZE:
        raise MalformedLeader(f"leader needs {LEADER_SIZE} bytes, got {len(raw)}")

    text = raw.decode("latin-1")
    header = RecordHeader(
        record_length=_parse_number(raw[0:5], cfg.strict, MalformedLeader, "record length"),
        interchange_level=text[5],
        leader_id=text[6],
        inline_code=text[7],
        version=text[8],
        application_indicator=text[9],
        field_control_length=_parse_number(
            raw[10:12], cfg.strict, MalformedLeader, "field control length"
        ),
        base_address=_parse_number(raw[12:17], cfg.strict, MalformedLeader, "base address"),
        extended_charset=text[17:20],
        length_size=_parse_size(raw[20], "size of field length"),
        position_size=_parse_size(raw[21], "size of field position"),
        tag_size=_parse_size(raw[23], "size of field tag"),
    )
    if header.entry_width == 0:
        raise MalformedLeader("directory entry map declares zero-width entries")
    if header.base_address <= LEADER_SIZE:
        raise MalformedLeader(f"base address {header.base_address} does not follow the leader")
    return header


def parse_directory(
    block: bytes, header: RecordHeader, config: DecoderConfig | None = None
) -> list[DirectoryEntry]:
    """Carve a directory block (terminator included) into entries."""
    cfg = config or DecoderConfig()
    width = header.entry_width
    body = block[:-1]
    if len(body) % width:
        raise MalformedDirectory(
            f"directory of {len(body)} bytes is not a multiple of the {width}-byte entry width"
        )

    entries: list[DirectoryEntry] = []
    for start in range(0, len(body), width):
        entry = body[start : start + width]
        tag_end = header.tag_size
        length_end = tag_end + header.length_size
        entries.append(
            DirectoryEntry(
                tag=entry[:tag_end].decode("latin-1"),
                length=_parse_number(
                    entry[tag_end:length_end], cfg.strict, MalformedDirectory, "field length"
                ),
                position=_parse_number(
                    entry[length_end:], cfg.strict, MalformedDirectory, "field position"
                ),
            )
        )
    return entries


def read_header(source: BinaryIO, config: DecoderConfig | None = None) -> RecordHeader | None:
    """Read a leader and its directory; ``None`` means the stream ended cleanly."""
    raw = read_exact(source, LEADER_SIZE)
    if not raw:
        return None
    if len(raw) < LEADER_SIZE:
        raise MalformedLeader(f"stream ended after {len(raw)} leader bytes")

    header = parse_leader(raw, config)
    size = header.base_address - LEADER_SIZE
    block = read_exact(source, size)
    if len(block) < size:
        raise MalformedDirectory(f"directory needs {size} bytes, stream gave {len(block)}")
    header.entries = parse_directory(block, header, config)
    return header
