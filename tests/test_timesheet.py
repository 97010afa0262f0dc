import pytest

from xdts2sts.errors import StructuralError
from xdts2sts.timesheet import Cell, Cut, Dialect, Layer, LayerKind, Timesheet, cell_number


def _sheet(*cells, frame_length=24):
    return Timesheet(Dialect.XDTS, [Cut("c1", frame_length, [Layer("A", LayerKind.DRAWING, list(cells))])])


def test_valid_tree_passes():
    _sheet(Cell(0, 12, "1"), Cell(12, 12, "2")).validate()


def test_empty_cut_is_allowed():
    Timesheet(Dialect.TDTS, [Cut("empty", 10)]).validate()


def test_no_cuts_rejected():
    with pytest.raises(StructuralError) as exc:
        Timesheet(Dialect.XDTS).validate()
    assert exc.value.path == "cuts"


def test_cell_past_cut_end_rejected():
    with pytest.raises(StructuralError) as exc:
        _sheet(Cell(20, 5, "1")).validate()
    assert exc.value.path == "cuts[0].layers[0].cells[0]"
    assert "24 frames" in str(exc.value)


def test_cell_ending_on_last_frame_allowed():
    _sheet(Cell(0, 24, "1")).validate()


@pytest.mark.parametrize("cell", [Cell(0, 0, "1"), Cell(-1, 2, "1")])
def test_bad_cell_range_rejected(cell):
    with pytest.raises(StructuralError):
        _sheet(cell).validate()


def test_overlapping_cells_rejected():
    with pytest.raises(StructuralError) as exc:
        _sheet(Cell(0, 10, "1"), Cell(5, 5, "2")).validate()
    assert exc.value.path.endswith("cells[1]")


def test_zero_frame_length_rejected():
    with pytest.raises(StructuralError) as exc:
        _sheet(frame_length=0).validate()
    assert exc.value.path == "cuts[0].frame_length"


def test_cell_end():
    assert Cell(3, 4, "x").end == 7


@pytest.mark.parametrize(
    "label,expected",
    [("12", 12), ("A3", 3), ("原画105", 105), ("X", 0), ("", 0), ("1a", 0)],
)
def test_cell_number(label, expected):
    assert cell_number(label) == expected


def test_dialect_from_path():
    assert Dialect.from_path("scene/cut01.XDTS") is Dialect.XDTS
    assert Dialect.from_path("cut01.tdts") is Dialect.TDTS
    assert Dialect.coerce(".xdts") is Dialect.XDTS
    with pytest.raises(ValueError):
        Dialect.from_path("cut01.json")
