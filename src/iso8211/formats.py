"""Compile ISO 8211 array descriptors and format controls into subfield specs.

Based on section 7.2.2.1 of the IHO S-57 publication (edition 3.1).

The array descriptor is a ``!`` separated list of subfield tags; a leading
``*`` means the tag group repeats to fill the field. The format controls
describe the encoding of each tag, in order:

- ``AGEN!FIDN!FIDS`` with ``(b12,b14,b12)``: three little-endian binary
  integers, unsigned 16, unsigned 32 and unsigned 16 bits wide. After ``b``
  the first digit is 1 for unsigned or 2 for signed, the second the byte width.
- ``*YCOO!XCOO`` with ``(2b24)``: two signed 32-bit integers; the leading 2 is
  a repeat count and the ``*`` lets the pair repeat until the field is used up.
- ``A``, ``I`` and ``R`` are character data, ``A(3)`` three characters wide and
  bare ``A`` terminated by the unit terminator. ``B(40)`` is a 40-bit (5 byte)
  bit string.
- ``2(b11,A)`` is a repeat group, expanded in place.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from iso8211.errors import MalformedFormat

TOKEN_RE = re.compile(r"^(\d*)([A-Za-z])(\d*)(?:\((\d*)\))?$")
GROUP_RE = re.compile(r"^(\d*)\((.*)\)$", re.DOTALL)


class SubfieldKind(Enum):
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    STRING = "string"
    BYTES = "bytes"

    @property
    def is_integer(self) -> bool:
        return self in _INTEGER_WIDTHS

    @property
    def signed(self) -> bool:
        return self in (SubfieldKind.INT8, SubfieldKind.INT16, SubfieldKind.INT32)


_INTEGER_WIDTHS = {
    SubfieldKind.UINT8: 1,
    SubfieldKind.UINT16: 2,
    SubfieldKind.UINT32: 4,
    SubfieldKind.INT8: 1,
    SubfieldKind.INT16: 2,
    SubfieldKind.INT32: 4,
}

BINARY_CODES = {
    "11": SubfieldKind.UINT8,
    "12": SubfieldKind.UINT16,
    "14": SubfieldKind.UINT32,
    "21": SubfieldKind.INT8,
    "22": SubfieldKind.INT16,
    "24": SubfieldKind.INT32,
}


@dataclass(frozen=True)
class SubfieldSpec:
    kind: SubfieldKind
    width: int  # 0 means read through the next unit terminator
    tag: str = ""


def split_array_descriptor(array_descriptor: str) -> tuple[list[str], bool]:
    """Return the subfield tags and whether the group repeats (leading ``*``)."""
    repeating = array_descriptor.startswith("*")
    if repeating:
        array_descriptor = array_descriptor[1:]
    return array_descriptor.split("!"), repeating


def _split_top_level(text: str) -> list[str]:
    items: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in text:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise MalformedFormat(f"unbalanced ')' in format controls: {text!r}")
        if ch == "," and depth == 0:
            items.append("".join(current))
            current = []
        else:
            current.append(ch)
    if depth:
        raise MalformedFormat(f"unbalanced '(' in format controls: {text!r}")
    items.append("".join(current))
    return [item.strip() for item in items if item.strip()]


def _spec_for(letter: str, code: str, width: str, tag: str, token: str) -> SubfieldSpec:
    size = int(width) if width else 0
    if letter in ("A", "I", "R"):
        if code:
            raise MalformedFormat(f"unexpected digits after {letter!r} in {token!r}")
        return SubfieldSpec(SubfieldKind.STRING, size, tag)
    if letter == "B":
        if code:
            raise MalformedFormat(f"unexpected digits after 'B' in {token!r}")
        return SubfieldSpec(SubfieldKind.BYTES, size // 8, tag)
    if letter == "b":
        kind = BINARY_CODES.get(code)
        if kind is None:
            raise MalformedFormat(f"unsupported binary format {token!r}")
        return SubfieldSpec(kind, _INTEGER_WIDTHS[kind], tag)
    raise MalformedFormat(f"unsupported format letter {letter!r} in {token!r}")


def _expand(items: list[str]) -> list[tuple[str, str, str, str]]:
    """Flatten tokens and repeat groups into (letter, code, width, token) tuples."""
    out: list[tuple[str, str, str, str]] = []
    for item in items:
        token = TOKEN_RE.match(item)
        if token:
            count, letter, code, width = token.groups()
            out.extend([(letter, code, width or "", item)] * int(count or 1))
            continue
        group = GROUP_RE.match(item)
        if group:
            count, inner = group.groups()
            out.extend(_expand(_split_top_level(inner)) * int(count or 1))
            continue
        raise MalformedFormat(f"cannot parse format token {item!r}")
    return out


def compile_format(array_descriptor: str, format_controls: str) -> list[SubfieldSpec]:
    """Build the ordered subfield specs for one field type.

    Returns an empty list when the format controls carry nothing beyond their
    parentheses; such fields decode as a single opaque payload.
    """
    if len(format_controls) <= 2:
        return []

    text = format_controls.strip()
    if text.startswith("(") and text.endswith(")"):
        text = text[1:-1]
    tokens = _expand(_split_top_level(text))
    tags, _repeating = split_array_descriptor(array_descriptor)

    if len(tokens) > len(tags):
        raise MalformedFormat(
            f"format {format_controls!r} has {len(tokens)} subfields but "
            f"descriptor {array_descriptor!r} names {len(tags)}"
        )
    if len(tokens) < len(tags):
        raise MalformedFormat(
            f"descriptor {array_descriptor!r} names {len(tags)} subfields but "
            f"format {format_controls!r} describes {len(tokens)}"
        )
    return [
        _spec_for(letter, code, width, tag, token)
        for (letter, code, width, token), tag in zip(tokens, tags, strict=True)
    ]
