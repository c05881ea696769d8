"""Lead and data records.

A file is one lead record followed by data records::

    file       : LeadRecord, DataRecord...
    LeadRecord : header, FieldType...
    DataRecord : header, Field...
    FieldType  : descriptor controls, name, subfield tags and formats
    Field      : subfield values

The lead record is read once; its field types are shared by every data
record decoded against it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from functools import cached_property
from typing import BinaryIO

from iso8211.config import DecoderConfig
from iso8211.errors import MalformedFormat, MalformedLeader, TruncatedField, WrongRecordKind
from iso8211.formats import SubfieldSpec, compile_format, split_array_descriptor
from iso8211.leader import (
    UNIT_TERMINATOR,
    DirectoryEntry,
    RecordHeader,
    read_exact,
    read_header,
)
from iso8211.subfields import SubfieldValue, decode_subfields

logger = logging.getLogger(__name__)

LEAD_RECORD_ID = "L"
DATA_RECORD_ID = "D"
FIELD_CONTROLS_SIZE = 9


@dataclass(frozen=True)
class FieldType:
    tag: str
    length: int
    position: int
    data_structure: str = ""
    data_type: str = ""
    auxiliary_controls: str = ""
    printable_ft: str = ""
    printable_ut: str = ""
    escape_sequence: str = ""
    name: str = ""
    array_descriptor: str = ""
    format_controls: str = ""

    @property
    def repeating(self) -> bool:
        return split_array_descriptor(self.array_descriptor)[1]

    @cached_property
    def subfield_specs(self) -> list[SubfieldSpec]:
        specs = compile_format(self.array_descriptor, self.format_controls)
        logger.debug(
            "compiled %s %r into %d subfield specs", self.tag, self.format_controls, len(specs)
        )
        return specs

    def decode(self, raw: bytes, encoding: str = "latin-1") -> list[SubfieldValue]:
        return decode_subfields(raw, self.subfield_specs, encoding=encoding)


@dataclass
class Field:
    tag: str
    length: int
    position: int
    field_type: FieldType | None
    subfields: list[SubfieldValue] = field(default_factory=list)

    @property
    def values(self) -> list[int | str | bytes]:
        return [sub.value for sub in self.subfields]

    def items(self) -> list[tuple[str, int | str | bytes]]:
        """Subfield values paired with their tags, in field order."""
        return [(sub.tag, sub.value) for sub in self.subfields]


@dataclass
class LeadRecord:
    header: RecordHeader
    field_types: dict[str, FieldType] = field(default_factory=dict)


@dataclass
class DataRecord:
    header: RecordHeader
    lead: LeadRecord
    fields: list[Field] = field(default_factory=list)

    @property
    def tags(self) -> list[str]:
        return [f.tag for f in self.fields]

    def get(self, tag: str) -> Field | None:
        for f in self.fields:
            if f.tag == tag:
                return f
        return None


def _read_field_bytes(source: BinaryIO, entry: DirectoryEntry) -> bytes:
    raw = read_exact(source, entry.length)
    if len(raw) < entry.length:
        raise TruncatedField(
            f"field {entry.tag!r} declares {entry.length} bytes, stream gave {len(raw)}"
        )
    return raw


def _read_field_type(source: BinaryIO, entry: DirectoryEntry) -> FieldType:
    if entry.length <= FIELD_CONTROLS_SIZE:
        raise MalformedFormat(
            f"descriptor for {entry.tag!r} is {entry.length} bytes, "
            f"shorter than its {FIELD_CONTROLS_SIZE}-byte control header"
        )
    raw = _read_field_bytes(source, entry)
    controls = raw[:FIELD_CONTROLS_SIZE].decode("latin-1")
    # drop the field terminator before splitting name / descriptor / formats
    parts = raw[FIELD_CONTROLS_SIZE:-1].split(bytes([UNIT_TERMINATOR]))
    parts += [b""] * (3 - len(parts))
    return FieldType(
        tag=entry.tag,
        length=entry.length,
        position=entry.position,
        data_structure=controls[0],
        data_type=controls[1],
        auxiliary_controls=controls[2:4],
        printable_ft=controls[4],
        printable_ut=controls[5],
        escape_sequence=controls[6:9],
        name=parts[0].decode("latin-1"),
        array_descriptor=parts[1].decode("latin-1"),
        format_controls=parts[2].decode("latin-1"),
    )


def read_lead_record(source: BinaryIO, config: DecoderConfig | None = None) -> LeadRecord:
    """Read the lead record and build its field type catalog."""
    header = read_header(source, config)
    if header is None:
        raise MalformedLeader("stream is empty; expected a lead record")
    if header.leader_id != LEAD_RECORD_ID:
        raise WrongRecordKind(LEAD_RECORD_ID, header.leader_id)

    lead = LeadRecord(header=header)
    for entry in header.entries:
        # duplicate tags: the last descriptor wins
        lead.field_types[entry.tag] = _read_field_type(source, entry)
    _skip_padding(source, header, sum(e.length for e in header.entries))
    return lead


def _skip_padding(source: BinaryIO, header: RecordHeader, consumed: int) -> None:
    if not header.record_length:
        return
    leftover = header.record_length - header.base_address - consumed
    if leftover > 0:
        logger.debug("skipping %d bytes of record padding", leftover)
        if len(read_exact(source, leftover)) < leftover:
            raise TruncatedField(f"record ended inside {leftover} bytes of declared padding")


def read_data_record(
    source: BinaryIO, lead: LeadRecord, config: DecoderConfig | None = None
) -> DataRecord | None:
    """Read and decode the next data record; ``None`` at a clean end of stream."""
    cfg = config or DecoderConfig()
    header = read_header(source, cfg)
    if header is None:
        return None
    if header.leader_id != DATA_RECORD_ID:
        raise WrongRecordKind(DATA_RECORD_ID, header.leader_id)

    record = DataRecord(header=header, lead=lead)
    consumed = 0
    for entry in header.entries:
        if header.record_length and (
            header.base_address + consumed + entry.length > header.record_length
        ):
            raise TruncatedField(
                f"field {entry.tag!r} runs past the declared record length "
                f"{header.record_length}"
            )
        raw = _read_field_bytes(source, entry)
        consumed += entry.length
        field_type = lead.field_types.get(entry.tag)
        if field_type is None:
            logger.debug("no field type for tag %r; keeping raw payload", entry.tag)
            subfields = decode_subfields(raw[:-1], [])
        else:
            subfields = field_type.decode(raw[:-1], encoding=cfg.encoding)
        record.fields.append(
            Field(
                tag=entry.tag,
                length=entry.length,
                position=entry.position,
                field_type=field_type,
                subfields=subfields,
            )
        )
    _skip_padding(source, header, consumed)
    return record


class Iso8211Reader:
    """Forward-only reader over one ISO 8211 byte stream.

    The lead record is read on construction; iterating yields data records
    until the stream ends.
    """

    def __init__(self, source: BinaryIO, config: DecoderConfig | None = None) -> None:
        self.source = source
        self.config = config or DecoderConfig()
        self.lead = read_lead_record(source, self.config)

    def read_record(self) -> DataRecord | None:
        return read_data_record(self.source, self.lead, self.config)

    def __iter__(self) -> Iterator[DataRecord]:
        while True:
            record = self.read_record()
            if record is None:
                return
            yield record

