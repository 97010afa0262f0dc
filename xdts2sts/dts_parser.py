"""
Decode XDTS / TDTS exposure sheets into the Timesheet model.

Both dialects are a one-line signature followed by a JSON body:

  exchangeDigitalTimeSheet Save Data      (.xdts)
  toeiDigitalTimeSheet Save Data          (.tdts)

XDTS keeps its cuts in ``timeTables``; TDTS nests them one level deeper in
``timeSheets[].timeTables``. Inside a time table both dialects store layers
as ``fields[].tracks[]`` with keyframes ``{"frame": n, "data": [{"values":
[label]}]}``, and track names in ``timeTableHeaders``. They differ in which
``fieldId`` carries which kind of layer.

Keyframe values
  - a label (drawing number, text) starts a new cell
  - SYMBOL_NULL_CELL ends the running cell (blank frames follow)
  - SYMBOL_TICK_1 / SYMBOL_TICK_2 / SYMBOL_HYPHEN and other SYMBOL_* marks
    continue the running cell

Text is tried as UTF-8 first and Shift-JIS (cp932) second.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from pydantic import ValidationError

from .dts_schema import TdtsDocument, TimeTable, Track, XdtsDocument
from .errors import ConversionError, DialectMismatchError, EncodingError, StructuralError
from .timesheet import Cell, Cut, Dialect, Layer, LayerKind, Timesheet

logger = logging.getLogger(__name__)


FALLBACK_ENCODING = "cp932"

SIGNATURES = {
    Dialect.XDTS: "exchangeDigitalTimeSheet",
    Dialect.TDTS: "toeiDigitalTimeSheet",
}
ROOT_KEYS = {
    Dialect.XDTS: "timeTables",
    Dialect.TDTS: "timeSheets",
}

NULL_CELL = "SYMBOL_NULL_CELL"
SYMBOL_PREFIX = "SYMBOL_"


@dataclass(frozen=True)
class _DialectRules:
    dialect: Dialect
    document: type
    layer_kinds: Dict[int, LayerKind]
    frame_origin: int
    decode: Callable[[Any, "_DialectRules"], Timesheet]


def decode_text(raw: bytes) -> str:
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.debug("Input is not UTF-8, retrying as %s", FALLBACK_ENCODING)
    try:
        return raw.decode(FALLBACK_ENCODING)
    except UnicodeDecodeError as e:
        raise EncodingError(
            f"text is neither UTF-8 nor Shift-JIS (bad byte 0x{raw[e.start]:02X} at offset {e.start})"
        ) from e


def _strip_signature(text: str, dialect: Dialect) -> str:
    text = text.lstrip()
    if text.startswith("{"):
        return text
    line, _, body = text.partition("\n")
    line = line.strip()
    for other, signature in SIGNATURES.items():
        if other is not dialect and line.startswith(signature):
            raise DialectMismatchError(
                f"signature {line!r} belongs to {other.name}, expected {dialect.name}", path="<header>"
            )
    if not line.startswith(SIGNATURES[dialect]):
        logger.debug("Unrecognised signature line %r", line)
    return body


def _load_root(body: str, dialect: Dialect) -> Dict[str, Any]:
    try:
        root = json.loads(body)
    except json.JSONDecodeError as e:
        raise StructuralError(
            f"invalid JSON: {e.msg} (line {e.lineno} column {e.colno})", path=f"@{e.pos}"
        ) from e
    except (ValueError, RecursionError) as e:
        # Over-long integer literals and very deep nesting.
        raise StructuralError(f"unreadable JSON: {e}", path="<root>") from e
    if not isinstance(root, dict):
        raise StructuralError("document root must be a JSON object", path="<root>")

    expected = ROOT_KEYS[dialect]
    if expected not in root:
        for other, key in ROOT_KEYS.items():
            if other is not dialect and key in root:
                raise DialectMismatchError(
                    f"document has {key!r} ({other.name} layout) but no {expected!r}", path=key
                )
        raise StructuralError(f"missing required field {expected!r}", path=expected)
    return root


def _format_loc(loc: Sequence[Union[str, int]]) -> str:
    out = ""
    for part in loc:
        if isinstance(part, int):
            out += f"[{part}]"
        else:
            out += f".{part}" if out else str(part)
    return out


def _validate_document(rules: _DialectRules, root: Dict[str, Any]):
    try:
        return rules.document.model_validate(root)
    except ValidationError as e:
        first = e.errors()[0]
        raise StructuralError(
            f"{first['msg']} ({e.error_count()} problem(s) in {rules.dialect.name} document)",
            path=_format_loc(first["loc"]),
        ) from e


def _build_cells(track: Track, duration: int, frame_origin: int, path: str) -> List[Cell]:
    cells: List[Cell] = []
    open_start: Optional[int] = None
    open_label: Optional[str] = None

    for key in sorted(track.frames, key=lambda f: f.frame):
        frame = key.frame - frame_origin
        if frame < 0 or frame >= duration:
            raise StructuralError(
                f"keyframe at frame {key.frame} lies outside the cut ({duration} frames)",
                path=f"{path}.frames",
            )
        value = key.first_value()
        if value is None or (value.startswith(SYMBOL_PREFIX) and value != NULL_CELL):
            continue

        if open_label is not None:
            if value == open_label:
                continue
            if frame > open_start:
                cells.append(Cell(open_start, frame - open_start, open_label))
            open_label = None
        if value != NULL_CELL:
            open_start, open_label = frame, value

    if open_label is not None:
        cells.append(Cell(open_start, duration - open_start, open_label))
    return cells


def _build_cut(identifier: str, table: TimeTable, rules: _DialectRules, path: str) -> Cut:
    if table.duration < 1:
        raise StructuralError(f"duration must be >= 1, got {table.duration}", path=f"{path}.duration")

    cut = Cut(identifier, table.duration)
    for fi, block in enumerate(table.field_blocks):
        kind = rules.layer_kinds.get(block.field_id)
        if kind is None:
            logger.debug("%s.fields[%d]: skipping unknown fieldId %d", path, fi, block.field_id)
            continue
        names = table.track_names(block.field_id)
        for ti, track in enumerate(block.tracks):
            if 0 <= track.track_no < len(names):
                name = names[track.track_no]
            else:
                name = f"Layer {track.track_no}"
            cells = _build_cells(track, table.duration, rules.frame_origin,
                                 f"{path}.fields[{fi}].tracks[{ti}]")
            cut.layers.append(Layer(name, kind, cells))
    return cut


def _sheet(rules: _DialectRules, doc, cuts: List[Cut], title: Optional[str]) -> Timesheet:
    resolution = (doc.resolution.width, doc.resolution.height) if doc.resolution else None
    return Timesheet(
        dialect=rules.dialect,
        cuts=cuts,
        title=title,
        comment=doc.comment,
        frame_rate=doc.frame_rate,
        resolution=resolution,
    )


def _decode_xdts(doc: XdtsDocument, rules: _DialectRules) -> Timesheet:
    cuts = [
        _build_cut(table.name or f"timeTable {i}", table, rules, f"timeTables[{i}]")
        for i, table in enumerate(doc.time_tables)
    ]
    title = doc.header.cut if doc.header else None
    return _sheet(rules, doc, cuts, title)


def _decode_tdts(doc: TdtsDocument, rules: _DialectRules) -> Timesheet:
    cuts: List[Cut] = []
    for si, sheet in enumerate(doc.time_sheets):
        cut_name = sheet.header.cut
        for ti, table in enumerate(sheet.time_tables):
            # Tables without fields are placeholders in TDTS exports.
            if not table.field_blocks:
                continue
            identifier = f"{cut_name}->{table.name}" if cut_name else table.name
            cuts.append(_build_cut(identifier, table, rules, f"timeSheets[{si}].timeTables[{ti}]"))
    title = doc.time_sheets[0].header.cut if len(doc.time_sheets) == 1 else None
    return _sheet(rules, doc, cuts, title)


_RULES = {
    Dialect.XDTS: _DialectRules(
        dialect=Dialect.XDTS,
        document=XdtsDocument,
        layer_kinds={0: LayerKind.DRAWING, 3: LayerKind.AUDIO, 5: LayerKind.CAMERA},
        frame_origin=0,
        decode=_decode_xdts,
    ),
    Dialect.TDTS: _DialectRules(
        dialect=Dialect.TDTS,
        document=TdtsDocument,
        layer_kinds={4: LayerKind.DRAWING, 3: LayerKind.AUDIO, 1: LayerKind.NOTE},
        frame_origin=0,
        decode=_decode_tdts,
    ),
}


def parse(raw: bytes, dialect_hint: Union[Dialect, str], source: Optional[Union[str, Path]] = None) -> Timesheet:
    """Parse raw .xdts/.tdts bytes.

    ``dialect_hint`` usually comes from the file extension; the content must
    agree with it. Raises ``EncodingError``, ``StructuralError`` or
    ``DialectMismatchError`` with ``source`` attached.
    """
    dialect = Dialect.coerce(dialect_hint)
    rules = _RULES[dialect]
    try:
        text = decode_text(raw)
        root = _load_root(_strip_signature(text, dialect), dialect)
        doc = _validate_document(rules, root)
        sheet = rules.decode(doc, rules)
        sheet.validate()
    except ConversionError as e:
        e.with_source(source)
        raise
    logger.debug("Parsed %s %s: %d cut(s)", dialect.name, source or "<bytes>", len(sheet.cuts))
    return sheet


def load_timesheet(path: Union[str, Path]) -> Timesheet:
    path = Path(path)
    return parse(path.read_bytes(), Dialect.from_path(path), source=path)
