"""Test-only STS reader; the product never reads .sts files back."""

import struct

from xdts2sts.timesheet import Cell, Cut, Layer, LayerKind, Timesheet

MAGIC = b"\x11ShiraheiTimeSheet"
TEXT_ENCODING = "cp932"


class _Reader:
    def __init__(self, data):
        self.data = data
        self.pos = 0

    def unpack(self, fmt):
        fmt = "<" + fmt
        vals = struct.unpack_from(fmt, self.data, self.pos)
        self.pos += struct.calcsize(fmt)
        return vals if len(vals) > 1 else vals[0]

    def array(self, count):
        fmt = f"<{count}H"
        vals = list(struct.unpack_from(fmt, self.data, self.pos))
        self.pos += struct.calcsize(fmt)
        return vals

    def pstr(self, width="B"):
        n = self.unpack(width)
        raw = self.data[self.pos:self.pos + n]
        assert len(raw) == n, f"truncated string at 0x{self.pos:X}"
        self.pos += n
        return raw.decode(TEXT_ENCODING)


def decode_container(data):
    r = _Reader(data)
    magic, version, cut_count, fps, width, height = r.unpack("18sHHHHH")
    assert magic == MAGIC
    assert version == 2
    title = r.pstr("H") or None
    comment = r.pstr("H") or None

    cuts = []
    for _ in range(cut_count):
        identifier = r.pstr()
        frame_length, layer_count = r.unpack("HB")
        layers = []
        for _ in range(layer_count):
            kind = LayerKind(r.unpack("B"))
            name = r.pstr()
            cell_count = r.unpack("H")
            cells = []
            for _ in range(cell_count):
                start, duration = r.unpack("HH")
                cells.append(Cell(start, duration, r.pstr()))
            layers.append(Layer(name, kind, cells))
        cuts.append(Cut(identifier, frame_length, layers))
    assert r.pos == len(data), "trailing bytes after last cut"

    return Timesheet(
        dialect=None,
        cuts=cuts,
        title=title,
        comment=comment,
        frame_rate=fps or None,
        resolution=(width, height) if width or height else None,
    )


def decode_sheet(data):
    r = _Reader(data)
    magic, layer_count, frame_count = r.unpack("18sBH2x")
    assert magic == MAGIC
    frames = [r.array(frame_count) for _ in range(layer_count)]
    names = [r.pstr() for _ in range(layer_count)]
    assert r.pos == len(data)
    return {"frame_count": frame_count, "frames": frames, "names": names}
