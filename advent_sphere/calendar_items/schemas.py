"""
Pydantic schemas for the calendar items API.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from advent_sphere.items.schemas import ItemSummary

Vector3 = tuple[float, float, float]


class CalendarItemCreate(BaseModel):
    """
    Either `day` (1-25, reveal instant picked from the room's schedule) or
    an explicit `open_date` must be given.
    """
    user_id: str = Field(..., min_length=1, max_length=100)
    item_id: int
    day: Optional[int] = None
    open_date: Optional[datetime] = None
    image_id: Optional[str] = Field(None, max_length=64)

    @model_validator(mode="after")
    def _day_or_open_date(self):
        if self.day is None and self.open_date is None:
            raise ValueError("Either day or open_date is required")
        if self.day is not None and self.open_date is not None:
            raise ValueError("Give day or open_date, not both")
        return self


class CalendarItemUpdate(BaseModel):
    """Partial update. Fields sent as null are cleared."""
    user_id: Optional[str] = Field(None, min_length=1, max_length=100)
    item_id: Optional[int] = None
    open_date: Optional[datetime] = None
    is_opened: Optional[bool] = None
    position: Optional[Vector3] = None
    rotation: Optional[Vector3] = None
    image_id: Optional[str] = Field(None, max_length=64)


class CalendarItemBulkUpdate(BaseModel):
    """Same update applied to several calendar items in one transaction."""
    ids: list[int] = Field(..., min_length=1)
    calendar_item: CalendarItemUpdate


class CalendarItemCreated(BaseModel):
    id: int


class CalendarItemResponse(BaseModel):
    id: int
    room_id: int
    user_id: str
    user_name: Optional[str] = None
    item_id: int
    item: Optional[ItemSummary] = None
    open_date: datetime
    is_opened: bool
    position: Optional[Vector3] = None
    rotation: Optional[Vector3] = None
    image_id: Optional[str] = None
    bundle_id: Optional[str] = None
    created_at: Optional[datetime] = None


class ImageDataUpload(BaseModel):
    """PNG sent as a data URI, e.g. the output of /ai/create-photo."""
    image_data: str = Field(..., min_length=1)


class ImageUploadResponse(BaseModel):
    image_id: str
    url: str
