"""Apply compiled subfield specs to a field's raw bytes."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from iso8211.errors import TruncatedField
from iso8211.formats import SubfieldKind, SubfieldSpec
from iso8211.leader import UNIT_TERMINATOR


@dataclass(frozen=True)
class SubfieldValue:
    kind: SubfieldKind
    tag: str
    value: int | str | bytes


def _take(raw: bytes, pos: int, spec: SubfieldSpec) -> tuple[bytes, int]:
    if spec.width == 0:
        end = raw.find(UNIT_TERMINATOR, pos)
        if end < 0:
            raise TruncatedField(f"subfield {spec.tag!r} has no unit terminator")
        return raw[pos:end], end + 1
    end = pos + spec.width
    if end > len(raw):
        raise TruncatedField(
            f"subfield {spec.tag!r} needs {spec.width} bytes at offset {pos}, "
            f"field has {len(raw) - pos} left"
        )
    return raw[pos:end], end


def decode_subfields(
    raw: bytes, specs: Sequence[SubfieldSpec], encoding: str = "latin-1"
) -> list[SubfieldValue]:
    """Decode ``raw`` by repeating ``specs`` until every byte is consumed.

    With no specs the payload comes back untouched as one BYTES value. The
    repetition is what fills ``*`` descriptors such as coordinate lists: the
    field length, not a count, decides how many groups there are.
    """
    if not specs:
        return [SubfieldValue(SubfieldKind.BYTES, "", raw)]

    values: list[SubfieldValue] = []
    pos = 0
    total = len(raw)
    while pos < total:
        for spec in specs:
            if pos >= total:
                raise TruncatedField(
                    f"field ended before subfield {spec.tag!r} of a repeated group"
                )
            chunk, pos = _take(raw, pos, spec)
            value: int | str | bytes
            if spec.kind.is_integer:
                value = int.from_bytes(chunk, "little", signed=spec.kind.signed)
            elif spec.kind is SubfieldKind.STRING:
                value = chunk.decode(encoding, errors="replace")
            else:
                value = chunk
            values.append(SubfieldValue(spec.kind, spec.tag, value))
    return values
