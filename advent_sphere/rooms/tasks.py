"""
Scheduled maintenance for rooms

Rooms are kept for RETENTION_DAYS after they start. Run from cron:

    python -m advent_sphere.rooms.tasks
"""
import logging
import os
from datetime import datetime, timedelta
from typing import Optional

from advent_sphere.acquisition.calendar_days import as_utc, utc_now
from advent_sphere.calendar_items.service import delete_room_calendar_items
from advent_sphere.rooms.models import Room
from advent_sphere.shared.database import SessionLocal, init_db

logger = logging.getLogger(__name__)

RETENTION_DAYS = int(os.getenv("RETENTION_DAYS", "90"))


def delete_expired_rooms(now: Optional[datetime] = None) -> int:
    """
    Delete rooms that started more than RETENTION_DAYS ago, with their
    calendar items and uploaded photos. Returns the number of rooms deleted.
    """
    cutoff = as_utc(now or utc_now()) - timedelta(days=RETENTION_DAYS)
    db = SessionLocal()

    try:
        expired = (
            db.query(Room)
            .filter(Room.start_at.isnot(None), Room.start_at < cutoff)
            .order_by(Room.created_at.asc())
            .all()
        )

        for room in expired:
            deleted_items = delete_room_calendar_items(db, room.id)
            logger.info(f"Deleting room {room.id} with {deleted_items} calendar items")
            db.delete(room)

        db.commit()
        logger.info(f"Retention sweep removed {len(expired)} room(s)")
        return len(expired)

    except Exception as e:
        db.rollback()
        logger.error(f"Error during retention sweep: {e}", exc_info=True)
        raise
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
    delete_expired_rooms()
