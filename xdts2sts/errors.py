"""
Error taxonomy for the parse -> encode pipeline.

Every failure carries the file it came from (``source``) and, where known,
a path into the source structure or model (``path``) such as
``timeTables[0].fields[1].tracks[2]`` or ``cuts[0].layers[1].cells[3]``.
"""

from __future__ import annotations

from typing import Optional


class ConversionError(Exception):
    """Base class for anything that aborts conversion of a single file."""

    def __init__(self, message: str, source: Optional[str] = None, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.source = source
        self.path = path

    def with_source(self, source) -> "ConversionError":
        if self.source is None and source is not None:
            self.source = str(source)
        return self

    def __str__(self) -> str:
        parts = []
        if self.source:
            parts.append(self.source)
        if self.path:
            parts.append(self.path)
        if parts:
            return f"{': '.join(parts)}: {self.message}"
        return self.message


class ParseError(ConversionError):
    pass


class EncodeError(ConversionError):
    pass


class StructuralError(ParseError):
    """Missing fields, malformed nesting or out-of-range cell placement."""


class DialectMismatchError(ParseError):
    """Content does not match the dialect claimed by the file extension."""


class EncodingError(ParseError, EncodeError):
    """Bytes could not be decoded, or text cannot be written as Shift-JIS."""


class FieldOverflowError(EncodeError, OverflowError):
    """A value does not fit the STS field that has to hold it."""


class EmptyTimesheetError(EncodeError):
    pass


class OutputClashError(ConversionError):
    """Two inputs would be written to the same output file."""
