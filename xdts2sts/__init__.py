"""
xdts2sts: Convert XDTS/TDTS exposure sheets to ShiraheiTimeSheet (.sts) files.

Modules
- timesheet: in-memory timesheet model (cuts, layers, cells) and invariants.
- dts_parser: decode .xdts/.tdts bytes into a Timesheet.
- sts_writer: encode a Timesheet into STS bytes.
- batch: discover inputs, convert them on a worker pool, collect failures.
- cli: command-line / drag-and-drop entry point.
"""

from .errors import (
    ConversionError,
    DialectMismatchError,
    EmptyTimesheetError,
    EncodeError,
    EncodingError,
    FieldOverflowError,
    OutputClashError,
    ParseError,
    StructuralError,
)
from .timesheet import Cell, Cut, Dialect, Layer, LayerKind, Timesheet
from .dts_parser import load_timesheet, parse
from .sts_writer import encode, encode_cut

__all__ = [
    "Cell",
    "ConversionError",
    "Cut",
    "Dialect",
    "DialectMismatchError",
    "EmptyTimesheetError",
    "EncodeError",
    "EncodingError",
    "FieldOverflowError",
    "Layer",
    "LayerKind",
    "OutputClashError",
    "ParseError",
    "StructuralError",
    "Timesheet",
    "encode",
    "encode_cut",
    "load_timesheet",
    "parse",
]

__version__ = "0.1.0"
