"""
Timesheet model shared by the parser and the STS writer.

Tree: Timesheet -> Cut -> Layer -> Cell. Frames are 0-based; a cell covers
``[start, start + duration)``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .errors import StructuralError


class Dialect(enum.Enum):
    XDTS = "xdts"
    TDTS = "tdts"

    @classmethod
    def coerce(cls, value: Union["Dialect", str]) -> "Dialect":
        if isinstance(value, Dialect):
            return value
        name = str(value).strip().lower().lstrip(".")
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"Unsupported timesheet format: {value!r}") from None

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "Dialect":
        return cls.coerce(Path(path).suffix)


class LayerKind(enum.IntEnum):
    # Values are the STS kind byte.
    DRAWING = 0
    CAMERA = 1
    NOTE = 2
    AUDIO = 3


@dataclass
class Cell:
    start: int
    duration: int
    label: str

    @property
    def end(self) -> int:
        return self.start + self.duration


@dataclass
class Layer:
    name: str
    kind: LayerKind = LayerKind.DRAWING
    cells: List[Cell] = field(default_factory=list)


@dataclass
class Cut:
    identifier: str
    frame_length: int
    layers: List[Layer] = field(default_factory=list)

    def validate(self, path: str = "cut") -> None:
        if not isinstance(self.frame_length, int) or self.frame_length < 1:
            raise StructuralError(f"frame length must be >= 1, got {self.frame_length!r}",
                                  path=f"{path}.frame_length")
        for li, layer in enumerate(self.layers):
            prev_end = 0
            for ci, cell in enumerate(layer.cells):
                where = f"{path}.layers[{li}].cells[{ci}]"
                if cell.start < 0:
                    raise StructuralError(f"cell starts before frame 0 ({cell.start})", path=where)
                if cell.duration < 1:
                    raise StructuralError(f"cell duration must be >= 1, got {cell.duration}", path=where)
                if cell.end > self.frame_length:
                    raise StructuralError(
                        f"cell {cell.label!r} spans frames {cell.start}..{cell.end} "
                        f"but the cut is {self.frame_length} frames long",
                        path=where,
                    )
                if cell.start < prev_end:
                    raise StructuralError(f"cell overlaps the previous cell at frame {cell.start}", path=where)
                prev_end = cell.end


@dataclass
class Timesheet:
    dialect: Dialect
    cuts: List[Cut] = field(default_factory=list)
    title: Optional[str] = None
    comment: Optional[str] = None
    frame_rate: Optional[int] = None
    resolution: Optional[Tuple[int, int]] = None

    def validate(self) -> None:
        if not self.cuts:
            raise StructuralError("timesheet has no cuts", path="cuts")
        for i, cut in enumerate(self.cuts):
            cut.validate(f"cuts[{i}]")


def cell_number(label: str) -> int:
    """Numeric cell value for the legacy sheet layout: trailing digits, else 0."""
    i = len(label)
    while i > 0 and label[i - 1] in "0123456789":
        i -= 1
    digits = label[i:]
    return int(digits) if digits else 0
