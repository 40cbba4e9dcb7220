"""
Reveal schedule of a room

Every calendar item is revealed at an instant inside its day:
[start_at + (day - 1) days, start_at + day days). With a fixed daily
reveal time the offset is the clock distance from start_at's time of day
to that time; without one it is random.
"""
import logging
import random
import uuid
from datetime import datetime, time, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from advent_sphere.acquisition.calendar_days import DAY, as_utc, day_start
from advent_sphere.calendar_items.models import CalendarItem
from advent_sphere.items.models import Item, SNOWDOME_TYPE
from advent_sphere.rooms.models import Room, ROOM_SPAN_DAYS
from advent_sphere.users.models import get_or_create_system_user

logger = logging.getLogger(__name__)

SNOWDOME_PART_COUNT = 4


def reveal_offset(start_at: datetime, item_get_time: Optional[time],
                  rng: random.Random) -> timedelta:
    if item_get_time is None:
        return timedelta(seconds=rng.randrange(int(DAY.total_seconds())))

    start = as_utc(start_at)
    start_seconds = start.hour * 3600 + start.minute * 60 + start.second
    target_seconds = item_get_time.hour * 3600 + item_get_time.minute * 60 + item_get_time.second
    return timedelta(seconds=(target_seconds - start_seconds) % int(DAY.total_seconds()))


def reveal_at(start_at: datetime, day: int, item_get_time: Optional[time] = None,
              rng: Optional[random.Random] = None) -> datetime:
    """Reveal instant of a calendar item on the given 1-based day."""
    if not 1 <= day <= ROOM_SPAN_DAYS:
        raise ValueError(f"Day must be between 1 and {ROOM_SPAN_DAYS}")
    rng = rng or random.Random()
    return day_start(start_at, day) + reveal_offset(start_at, item_get_time, rng)


def create_snowdome_track(db: Session, room: Room,
                          rng: Optional[random.Random] = None) -> list[CalendarItem]:
    """
    Schedule the four snowdome parts of a new room (not committed).

    Parts land on distinct random days and share one bundle id. The latest
    part is the final one; its reveal instant becomes the room's
    snow_dome_parts_last_date. Nothing is scheduled when the catalog has
    no snowdome items.
    """
    rng = rng or random.Random()
    catalog_parts = (
        db.query(Item)
        .filter(Item.type == SNOWDOME_TYPE)
        .order_by(Item.id.asc())
        .all()
    )
    if not catalog_parts:
        logger.warning(f"No snowdome items in catalog; room {room.id} gets no snowdome track")
        room.snow_dome_parts_last_date = None
        return []

    system_user = get_or_create_system_user(db)
    bundle_id = uuid.uuid4().hex
    days = sorted(rng.sample(range(1, ROOM_SPAN_DAYS + 1), SNOWDOME_PART_COUNT))

    parts = []
    for index, day in enumerate(days):
        part = CalendarItem(
            room_id=room.id,
            user_id=system_user.id,
            item_id=catalog_parts[index % len(catalog_parts)].id,
            open_date=reveal_at(room.start_at, day, room.item_get_time, rng),
            bundle_id=bundle_id,
        )
        db.add(part)
        parts.append(part)

    room.snow_dome_parts_last_date = parts[-1].open_date
    logger.info(f"Scheduled snowdome parts for room {room.id} on days {days}")
    return parts
