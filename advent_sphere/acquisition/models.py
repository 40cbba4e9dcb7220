"""
Snapshots of rooms and calendar items as seen by the acquisition flow.

They are plain immutable values, independent of the ORM and of the HTTP
schemas; stores convert their own representations into these.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from advent_sphere.acquisition.calendar_days import as_utc

SNOWDOME_TYPE = "snowdome"

Vector3 = tuple[float, float, float]


class RoomSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    start_at: datetime
    snow_dome_parts_last_date: Optional[datetime] = None
    is_anonymous: bool = False

    @field_validator("start_at", "snow_dome_parts_last_date")
    @classmethod
    def _utc(cls, value):
        return as_utc(value) if value is not None else None


class CalendarItemSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    room_id: int
    item_type: str
    item_name: str = ""
    open_date: datetime
    is_opened: bool = False
    position: Optional[Vector3] = None
    rotation: Optional[Vector3] = None
    bundle_id: Optional[str] = None
    image_id: Optional[str] = None
    user_id: Optional[str] = None

    @field_validator("open_date")
    @classmethod
    def _utc(cls, value):
        return as_utc(value)

    @property
    def is_snowdome(self) -> bool:
        return self.item_type == SNOWDOME_TYPE

    @property
    def is_placed(self) -> bool:
        return self.position is not None
