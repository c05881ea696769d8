"""Failure kinds raised while decoding ISO 8211 records.

End of stream at a record boundary is not an error: readers return ``None``
(or stop iterating) instead of raising one of these.
"""

from __future__ import annotations


class Iso8211Error(Exception):
    """Base class for every decoding failure."""


class MalformedLeader(Iso8211Error):
    """The 24-byte leader is short or carries unusable values."""


class WrongRecordKind(Iso8211Error):
    """The leader identifier is not the one the caller asked for."""

    def __init__(self, expected: str, found: str) -> None:
        super().__init__(f"expected a {expected!r} record, found leader id {found!r}")
        self.expected = expected
        self.found = found


class MalformedDirectory(Iso8211Error):
    """The directory block is short or not a whole number of entries."""


class MalformedFormat(Iso8211Error):
    """Format controls do not parse or disagree with the array descriptor."""


class TruncatedField(Iso8211Error):
    """A field ran out of bytes before its declared structure was satisfied."""
