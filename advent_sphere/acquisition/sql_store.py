"""
Calendar store backed by the application database.

Used server side and by scripts or tests that drive the acquisition flow
without going through HTTP.
"""
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from advent_sphere.acquisition.models import CalendarItemSnapshot, RoomSnapshot
from advent_sphere.acquisition.results import BundleWrite, PersistenceError
from advent_sphere.acquisition.store import CalendarStore
from advent_sphere.calendar_items.models import CalendarItem
from advent_sphere.calendar_items.service import (
    CalendarItemConflict,
    CalendarItemNotFound,
    InvalidCalendarItemUpdate,
    update_calendar_items,
)
from advent_sphere.rooms.models import Room

logger = logging.getLogger(__name__)


def room_snapshot(room: Room) -> RoomSnapshot:
    return RoomSnapshot(
        id=room.id,
        start_at=room.start_at,
        snow_dome_parts_last_date=room.snow_dome_parts_last_date,
        is_anonymous=room.is_anonymous,
    )


def calendar_item_snapshot(calendar_item: CalendarItem) -> CalendarItemSnapshot:
    return CalendarItemSnapshot(
        id=calendar_item.id,
        room_id=calendar_item.room_id,
        item_type=calendar_item.item.type,
        item_name=calendar_item.item.name,
        open_date=calendar_item.open_date,
        is_opened=calendar_item.is_opened,
        position=calendar_item.position,
        rotation=calendar_item.rotation,
        bundle_id=calendar_item.bundle_id,
        image_id=calendar_item.image_id,
        user_id=calendar_item.user_id,
    )


class SqlCalendarStore(CalendarStore):
    """Store backed by a SQLAlchemy session; bundle updates are one transaction."""

    def __init__(self, db: Session):
        self.db = db

    def fetch_room(self, room_id: int) -> RoomSnapshot:
        room = self.db.get(Room, room_id)
        if room is None:
            raise PersistenceError(f"Room {room_id} not found", status_code=404)
        return room_snapshot(room)

    def fetch_calendar_items(self, room_id: int) -> list[CalendarItemSnapshot]:
        rows = (
            self.db.query(CalendarItem)
            .filter(CalendarItem.room_id == room_id)
            .order_by(CalendarItem.open_date.asc(), CalendarItem.id.asc())
            .all()
        )
        return [calendar_item_snapshot(row) for row in rows]

    def update_calendar_item(self, room_id, calendar_item_id, fields):
        write = self.update_calendar_items(room_id, [calendar_item_id], fields)
        if write.failed:
            raise PersistenceError(
                write.failed[calendar_item_id], calendar_item_id=calendar_item_id
            )
        return write.updated[0]

    def update_calendar_items(self, room_id, calendar_item_ids, fields):
        calendar_item_ids = list(calendar_item_ids)
        try:
            rows = update_calendar_items(self.db, room_id, calendar_item_ids, fields)
            self.db.commit()
        except (CalendarItemNotFound, CalendarItemConflict, InvalidCalendarItemUpdate,
                SQLAlchemyError) as e:
            self.db.rollback()
            logger.warning(f"Calendar item update rolled back for room {room_id}: {e}")
            return BundleWrite(failed={cid: str(e) for cid in calendar_item_ids})

        for row in rows:
            self.db.refresh(row)
        return BundleWrite(updated=[calendar_item_snapshot(row) for row in rows])

    def create_calendar_item(self, room_id, fields):
        calendar_item = CalendarItem(room_id=room_id, **fields)
        try:
            self.db.add(calendar_item)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Could not create calendar item: {e}") from e
        self.db.refresh(calendar_item)
        return calendar_item_snapshot(calendar_item)
