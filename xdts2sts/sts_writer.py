"""
STS (ShiraheiTimeSheet) writer.

Two layouts share the 18-byte magic ``\\x11ShiraheiTimeSheet`` (a pascal
string: length byte 0x11 followed by the 17 ASCII characters).

Container, version 2 (``encode``), one file per source timesheet:
  0x00  18s  magic
  0x12  H    version (2)
  0x14  H    cut count
  0x16  H    frame rate       (0 = unspecified)
  0x18  H    width            (0 = unspecified)
  0x1A  H    height           (0 = unspecified)
  0x1C  pstr16 title, pstr16 comment
  then per cut:
    pstr8 identifier, H frame length, B layer count
    per layer: B kind, pstr8 name, H cell count
      per cell: H start, H duration, pstr8 label

Sheet (``encode_cut``), one file per cut, the layout older ShiraheiTimeSheet
builds read:
  0x00  18s  magic
  0x12  B    layer count (drawing layers only)
  0x13  H    frame count
  0x15  2x   padding
  0x17  layer_count * frame_count * H   cell number per frame (0 = blank)
  then per layer: pstr8 name

All integers are little-endian. Text is Shift-JIS (cp932). pstr8/pstr16
are a u8/u16 byte length followed by the encoded bytes.
"""

from __future__ import annotations

import logging
import struct
from typing import List, Optional

from .errors import EmptyTimesheetError, EncodingError, FieldOverflowError
from .timesheet import Cut, LayerKind, Timesheet, cell_number

logger = logging.getLogger(__name__)


MAGIC = b"\x11ShiraheiTimeSheet"
VERSION = 2
TEXT_ENCODING = "cp932"

HEADER_FMT = "<18sHHHHH"
HEADER_SIZE = struct.calcsize(HEADER_FMT)  # 0x1C
SHEET_HEADER_FMT = "<18sBH2x"
SHEET_HEADER_SIZE = struct.calcsize(SHEET_HEADER_FMT)  # 0x17

U8_MAX = 0xFF
U16_MAX = 0xFFFF


def _check(value: int, limit: int, what: str, path: str) -> int:
    if value < 0 or value > limit:
        raise FieldOverflowError(f"{what} {value} does not fit (max {limit})", path=path)
    return value


def _encode_text(text: Optional[str], what: str, path: str) -> bytes:
    try:
        return (text or "").encode(TEXT_ENCODING)
    except UnicodeEncodeError as e:
        bad = e.object[e.start:e.end]
        raise EncodingError(f"{what} {text!r} has characters outside Shift-JIS: {bad!r}", path=path) from e


def _pstr(out: bytearray, text: Optional[str], width: str, what: str, path: str) -> None:
    raw = _encode_text(text, what, path)
    limit = U8_MAX if width == "B" else U16_MAX
    _check(len(raw), limit, f"{what} length", path)
    out += struct.pack("<" + width, len(raw))
    out += raw


def encode(timesheet: Timesheet) -> bytes:
    """Encode a whole timesheet as an STS version 2 container."""
    if not timesheet.cuts:
        raise EmptyTimesheetError("timesheet has no cuts", path="cuts")
    timesheet.validate()

    width, height = timesheet.resolution or (0, 0)
    out = bytearray(HEADER_SIZE)
    struct.pack_into(
        HEADER_FMT, out, 0,
        MAGIC,
        VERSION,
        _check(len(timesheet.cuts), U16_MAX, "cut count", "cuts"),
        _check(timesheet.frame_rate or 0, U16_MAX, "frame rate", "frame_rate"),
        _check(width, U16_MAX, "width", "resolution"),
        _check(height, U16_MAX, "height", "resolution"),
    )
    _pstr(out, timesheet.title, "H", "title", "title")
    _pstr(out, timesheet.comment, "H", "comment", "comment")

    for ci, cut in enumerate(timesheet.cuts):
        cpath = f"cuts[{ci}]"
        _pstr(out, cut.identifier, "B", "cut identifier", f"{cpath}.identifier")
        out += struct.pack(
            "<HB",
            _check(cut.frame_length, U16_MAX, "frame length", f"{cpath}.frame_length"),
            _check(len(cut.layers), U8_MAX, "layer count", f"{cpath}.layers"),
        )
        for li, layer in enumerate(cut.layers):
            lpath = f"{cpath}.layers[{li}]"
            out += struct.pack("<B", int(layer.kind))
            _pstr(out, layer.name, "B", "layer name", f"{lpath}.name")
            out += struct.pack("<H", _check(len(layer.cells), U16_MAX, "cell count", f"{lpath}.cells"))
            for ki, cell in enumerate(layer.cells):
                kpath = f"{lpath}.cells[{ki}]"
                out += struct.pack(
                    "<HH",
                    _check(cell.start, U16_MAX, "cell start", kpath),
                    _check(cell.duration, U16_MAX, "cell duration", kpath),
                )
                _pstr(out, cell.label, "B", "cell label", f"{kpath}.label")

    logger.debug("Encoded %d cut(s) into %d bytes", len(timesheet.cuts), len(out))
    return bytes(out)


def _expand_frames(cut: Cut, layer_index: int, path: str) -> List[int]:
    frames = [0] * cut.frame_length
    for ki, cell in enumerate(cut.layers[layer_index].cells):
        number = _check(cell_number(cell.label), U16_MAX, "cell number", f"{path}.cells[{ki}]")
        for f in range(cell.start, cell.end):
            frames[f] = number
    return frames


def encode_cut(cut: Cut) -> bytes:
    """Encode one cut in the per-frame sheet layout (drawing layers only)."""
    cut.validate()
    drawing = [i for i, layer in enumerate(cut.layers) if layer.kind == LayerKind.DRAWING]

    out = bytearray(SHEET_HEADER_SIZE)
    struct.pack_into(
        SHEET_HEADER_FMT, out, 0,
        MAGIC,
        _check(len(drawing), U8_MAX, "layer count", "layers"),
        _check(cut.frame_length, U16_MAX, "frame count", "frame_length"),
    )
    for li in drawing:
        frames = _expand_frames(cut, li, f"layers[{li}]")
        out += struct.pack(f"<{len(frames)}H", *frames)
    for li in drawing:
        _pstr(out, cut.layers[li].name, "B", "layer name", f"layers[{li}].name")

    logger.debug("Encoded sheet %r: %d layer(s) x %d frame(s)", cut.identifier, len(drawing), cut.frame_length)
    return bytes(out)
