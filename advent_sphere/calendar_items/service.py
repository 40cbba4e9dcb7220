"""
Calendar item rules shared by the REST routes and the SQL acquisition store.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from advent_sphere.acquisition.calendar_days import as_utc, day_number, is_within_span
from advent_sphere.calendar_items.models import CalendarItem
from advent_sphere.items.models import SNOWDOME_TYPE
from advent_sphere.rooms.models import Room, ROOM_SPAN_DAYS
from advent_sphere.shared import storage
from advent_sphere.users.models import SYSTEM_USER_ID

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {
    "user_id",
    "item_id",
    "open_date",
    "is_opened",
    "position",
    "rotation",
    "image_id",
}

NON_NULLABLE_FIELDS = {"user_id", "item_id", "open_date", "is_opened"}

# Fields that change when or what is revealed; only the room owner may set them
SCHEDULING_FIELDS = {"user_id", "item_id", "open_date"}


class InvalidCalendarItemUpdate(ValueError):
    """Unknown field, or null for a required field."""


class CalendarItemConflict(ValueError):
    """An update would break the opened/placed invariants."""


def apply_update(calendar_item: CalendarItem, fields: dict) -> CalendarItem:
    """
    Apply a partial update in place.

    Keys present with a None value clear the field. is_opened never goes
    back to false, and an item cannot hold a position while unopened.
    """
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise InvalidCalendarItemUpdate(f"Unknown field(s): {', '.join(sorted(unknown))}")

    for key in NON_NULLABLE_FIELDS & set(fields):
        if fields[key] is None:
            raise InvalidCalendarItemUpdate(f"{key} cannot be null")

    if "is_opened" in fields:
        if calendar_item.is_opened and not fields["is_opened"]:
            raise CalendarItemConflict("An opened calendar item cannot be closed again")

    opened = fields.get("is_opened", calendar_item.is_opened)
    position = fields.get("position", calendar_item.position)
    if position is not None and not opened:
        raise CalendarItemConflict("A calendar item must be opened before it is placed")

    for key, value in fields.items():
        if key in ("position", "rotation") and value is not None:
            value = [float(v) for v in value]
        setattr(calendar_item, key, value)

    return calendar_item


def display_user_name(calendar_item: CalendarItem, is_anonymous: bool) -> Optional[str]:
    if is_anonymous or calendar_item.user_id == SYSTEM_USER_ID or calendar_item.user is None:
        return None
    return calendar_item.user.name


def to_response(calendar_item: CalendarItem, is_anonymous: bool) -> dict:
    return {
        "id": calendar_item.id,
        "room_id": calendar_item.room_id,
        "user_id": calendar_item.user_id,
        "user_name": display_user_name(calendar_item, is_anonymous),
        "item_id": calendar_item.item_id,
        "item": calendar_item.item.to_dict() if calendar_item.item else None,
        "open_date": calendar_item.open_date,
        "is_opened": calendar_item.is_opened,
        "position": calendar_item.position,
        "rotation": calendar_item.rotation,
        "image_id": calendar_item.image_id,
        "bundle_id": calendar_item.bundle_id,
        "created_at": calendar_item.created_at,
    }


def delete_room_calendar_items(db: Session, room_id: int) -> int:
    """Delete every calendar item of a room and its uploaded images (not committed)."""
    calendar_items = db.query(CalendarItem).filter(CalendarItem.room_id == room_id).all()
    for calendar_item in calendar_items:
        if calendar_item.image_id:
            storage.delete_object(storage.user_image_key(calendar_item.image_id))
        db.delete(calendar_item)
    db.flush()
    return len(calendar_items)


class CalendarItemNotFound(LookupError):
    def __init__(self, room_id: int, calendar_item_id: int):
        super().__init__(f"Calendar item {calendar_item_id} not found in room {room_id}")
        self.room_id = room_id
        self.calendar_item_id = calendar_item_id


def get_calendar_item(db: Session, room_id: int, calendar_item_id: int) -> CalendarItem:
    calendar_item = (
        db.query(CalendarItem)
        .filter(CalendarItem.room_id == room_id, CalendarItem.id == calendar_item_id)
        .first()
    )
    if calendar_item is None:
        raise CalendarItemNotFound(room_id, calendar_item_id)
    return calendar_item


def update_calendar_items(db: Session, room_id: int, calendar_item_ids: list[int],
                          fields: dict) -> list[CalendarItem]:
    """
    Apply the same partial update to several items of a room (not committed).

    Raises CalendarItemNotFound, CalendarItemConflict or
    InvalidCalendarItemUpdate before anything is flushed; the caller rolls back.
    """
    rows = [get_calendar_item(db, room_id, cid) for cid in dict.fromkeys(calendar_item_ids)]
    if fields.get("open_date") is not None:
        fields = {**fields, "open_date": as_utc(fields["open_date"])}
        check_reschedule(db, room_id, rows, fields["open_date"])
    for row in rows:
        apply_update(row, dict(fields))
    return rows


def check_reschedule(db: Session, room_id: int, rows: list[CalendarItem],
                     open_date: datetime) -> int:
    """
    Day number `rows` would move to.

    The day has to lie within the room's span, and a day holds at most one
    item besides snowdome parts: moving onto a day taken by another regular
    item, or moving several items that are not all snowdome parts, conflicts.
    """
    room = db.get(Room, room_id)
    day = day_number(room.start_at, open_date)
    if not is_within_span(day, ROOM_SPAN_DAYS):
        raise InvalidCalendarItemUpdate(f"open_date falls on day {day}, outside 1-{ROOM_SPAN_DAYS}")

    moving = {row.id for row in rows}
    if len(rows) > 1 and any(row.item.type != SNOWDOME_TYPE for row in rows):
        raise CalendarItemConflict(f"Only snowdome parts can share day {day}")

    others = (
        db.query(CalendarItem)
        .filter(CalendarItem.room_id == room_id, CalendarItem.id.notin_(moving))
        .all()
    )
    for other in others:
        if other.item.type != SNOWDOME_TYPE and day_number(room.start_at, other.open_date) == day:
            raise CalendarItemConflict(f"Day {day} already has a calendar item")
    return day
