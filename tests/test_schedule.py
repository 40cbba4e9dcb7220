"""Reveal instants and the snowdome track."""
import random
from datetime import datetime, time, timedelta, timezone

import pytest

from advent_sphere.acquisition.calendar_days import as_utc, day_number
from advent_sphere.calendar_items.models import CalendarItem
from advent_sphere.rooms.models import Room
from advent_sphere.rooms.schedule import create_snowdome_track, reveal_at
from advent_sphere.users.models import SYSTEM_USER_ID

START = datetime(2025, 12, 1, 15, 0, tzinfo=timezone.utc)


def test_random_reveal_stays_inside_its_day():
    rng = random.Random(7)
    for day in range(1, 26):
        for _ in range(20):
            assert day_number(START, reveal_at(START, day, None, rng)) == day


def test_fixed_reveal_time_of_day():
    # 09:00 is 18 hours after the 15:00 start, so day 1 reveals on Dec 2 at 09:00
    assert reveal_at(START, 1, time(9, 0)) == datetime(2025, 12, 2, 9, 0, tzinfo=timezone.utc)
    assert reveal_at(START, 3, time(15, 0)) == datetime(2025, 12, 3, 15, 0, tzinfo=timezone.utc)
    assert day_number(START, reveal_at(START, 25, time(14, 59))) == 25


def test_reveal_day_out_of_range():
    with pytest.raises(ValueError):
        reveal_at(START, 0)
    with pytest.raises(ValueError):
        reveal_at(START, 26)


def _room(db, owner):
    room = Room(owner_id=owner, edit_id="edit", start_at=START, generate_count=0)
    db.add(room)
    db.flush()
    return room


def test_snowdome_track(db, owner, catalog):
    room = _room(db, owner)

    parts = create_snowdome_track(db, room, random.Random(3))
    db.commit()

    assert len(parts) == 4
    days = [day_number(START, part.open_date) for part in parts]
    assert len(set(days)) == 4
    assert all(1 <= day <= 25 for day in days)
    assert len({part.bundle_id for part in parts}) == 1
    assert all(part.user_id == SYSTEM_USER_ID for part in parts)
    # Parts cycle through the catalog's snowdome items in id order
    assert [part.item_id for part in parts] == [
        catalog["dome_base"], catalog["dome_glass"], catalog["dome_base"], catalog["dome_glass"],
    ]

    db.refresh(room)
    assert as_utc(room.snow_dome_parts_last_date) == max(as_utc(p.open_date) for p in parts)
    assert db.query(CalendarItem).filter(CalendarItem.room_id == room.id).count() == 4


def test_no_snowdome_catalog_means_no_track(db, owner):
    room = _room(db, owner)

    assert create_snowdome_track(db, room, random.Random(3)) == []
    db.commit()

    db.refresh(room)
    assert room.snow_dome_parts_last_date is None
    assert db.query(CalendarItem).count() == 0


def test_reveal_at_is_after_day_start():
    rng = random.Random(1)
    instant = reveal_at(START, 5, None, rng)
    assert START + timedelta(days=4) <= instant < START + timedelta(days=5)
