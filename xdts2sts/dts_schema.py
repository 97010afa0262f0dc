"""Document schemas for the XDTS and TDTS JSON bodies."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _DtsModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)


class DataItem(_DtsModel):
    values: List[str] = Field(default_factory=list)


class FrameData(_DtsModel):
    frame: int
    data: List[DataItem] = Field(default_factory=list)

    def first_value(self) -> Optional[str]:
        if self.data and self.data[0].values:
            return self.data[0].values[0]
        return None


class Track(_DtsModel):
    track_no: int = Field(alias="trackNo")
    frames: List[FrameData] = Field(default_factory=list)


class FieldBlock(_DtsModel):
    field_id: int = Field(alias="fieldId")
    tracks: List[Track] = Field(default_factory=list)


class TimeTableHeader(_DtsModel):
    field_id: int = Field(alias="fieldId")
    names: List[str] = Field(default_factory=list)


class TimeTable(_DtsModel):
    name: str = ""
    duration: int
    field_blocks: List[FieldBlock] = Field(default_factory=list, alias="fields")
    time_table_headers: List[TimeTableHeader] = Field(default_factory=list, alias="timeTableHeaders")

    def track_names(self, field_id: int) -> List[str]:
        for h in self.time_table_headers:
            if h.field_id == field_id:
                return h.names
        return []


class SheetHeader(_DtsModel):
    cut: Optional[str] = None
    scene: Optional[str] = None


class Resolution(_DtsModel):
    width: int
    height: int


class _DocumentMeta(_DtsModel):
    comment: Optional[str] = None
    frame_rate: Optional[int] = Field(default=None, alias="frameRate")
    resolution: Optional[Resolution] = None


class XdtsDocument(_DocumentMeta):
    header: Optional[SheetHeader] = None
    time_tables: List[TimeTable] = Field(alias="timeTables")


class TdtsTimeSheet(_DtsModel):
    header: SheetHeader = Field(default_factory=SheetHeader)
    time_tables: List[TimeTable] = Field(default_factory=list, alias="timeTables")


class TdtsDocument(_DocumentMeta):
    time_sheets: List[TdtsTimeSheet] = Field(alias="timeSheets")
