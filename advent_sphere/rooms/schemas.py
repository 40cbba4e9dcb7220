"""
Pydantic schemas for the rooms API.
"""
from datetime import datetime, time
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from advent_sphere.acquisition.calendar_days import as_utc


def _parse_item_get_time(value):
    """
    Accept a time of day ("10:30") or a datetime whose UTC time component
    is used ("2025-12-01T10:30:00Z").
    """
    if isinstance(value, str) and "T" in value:
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        return as_utc(value).time()
    return value


class RoomCreate(BaseModel):
    owner_id: str = Field(..., min_length=1, max_length=100)
    start_at: datetime
    item_get_time: Optional[time] = None
    password: Optional[str] = Field(None, max_length=100)
    is_anonymous: bool = False

    @field_validator("item_get_time", mode="before")
    @classmethod
    def _item_get_time(cls, value):
        return _parse_item_get_time(value)


class RoomUpdate(BaseModel):
    """Partial update. start_at is fixed at creation."""
    item_get_time: Optional[time] = None
    password: Optional[str] = Field(None, max_length=100)
    is_anonymous: Optional[bool] = None

    @field_validator("item_get_time", mode="before")
    @classmethod
    def _item_get_time(cls, value):
        return _parse_item_get_time(value)

    @model_validator(mode="before")
    @classmethod
    def _reject_start_at(cls, data):
        if isinstance(data, dict) and "start_at" in data:
            raise ValueError("start_at cannot be changed after the room is created")
        return data


class RoomCreated(BaseModel):
    id: int
    edit_id: str


class RoomResponse(BaseModel):
    id: int
    owner_id: str
    start_at: datetime
    item_get_time: Optional[time] = None
    is_anonymous: bool
    is_password_protected: bool
    generate_count: int
    snow_dome_parts_last_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PasswordProtectedResponse(BaseModel):
    is_password_protected: bool


class PasswordVerify(BaseModel):
    password: str = Field(..., max_length=100)


class TodayResponse(BaseModel):
    """Day number of the server clock and the drawer that may be opened now."""
    today_day: int
    openable_calendar_item_id: Optional[int] = None
