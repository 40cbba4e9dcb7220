"""
Which calendar drawer may be opened right now.

A drawer opens only on its own day, only while it still holds an unopened
calendar item, and only once that item's reveal instant has passed. Past
days look opened because of the persisted flag, not because of this check.
"""
from datetime import datetime
from typing import Iterable, Optional

from advent_sphere.acquisition.calendar_days import as_utc, day_number, today_day
from advent_sphere.acquisition.models import CalendarItemSnapshot, RoomSnapshot


def item_for_day(
    room: Optional[RoomSnapshot],
    day: int,
    items: Optional[Iterable[CalendarItemSnapshot]],
) -> Optional[CalendarItemSnapshot]:
    """First unopened calendar item whose day number is `day`."""
    if room is None or items is None:
        return None
    for item in items:
        if item.is_opened:
            continue
        if day_number(room.start_at, item.open_date) == day:
            return item
    return None


def can_open_day(
    room: Optional[RoomSnapshot],
    day: int,
    items: Optional[Iterable[CalendarItemSnapshot]],
    now: datetime,
) -> bool:
    if room is None:
        return False

    if day != today_day(room.start_at, now):
        return False

    item = item_for_day(room, day, items)
    if item is None:
        return False

    return as_utc(now) >= item.open_date


def todays_openable_item(
    room: Optional[RoomSnapshot],
    items: Optional[Iterable[CalendarItemSnapshot]],
    now: datetime,
) -> Optional[CalendarItemSnapshot]:
    if room is None:
        return None
    items = list(items or [])
    day = today_day(room.start_at, now)
    if not can_open_day(room, day, items, now):
        return None
    return item_for_day(room, day, items)
