"""
Rooms API

A room is created by its owner, who receives an edit id. Anyone with the
room id can view it; changing or deleting it requires the X-Edit-Id header.
"""
import logging
import random
import secrets
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from advent_sphere.acquisition.calendar_days import as_utc, today_day, utc_now
from advent_sphere.acquisition.openability import todays_openable_item
from advent_sphere.acquisition.sql_store import SqlCalendarStore
from advent_sphere.calendar_items.service import delete_room_calendar_items
from advent_sphere.rooms.models import Room
from advent_sphere.rooms.schedule import create_snowdome_track
from advent_sphere.rooms.schemas import (
    PasswordProtectedResponse,
    PasswordVerify,
    RoomCreate,
    RoomCreated,
    RoomResponse,
    RoomUpdate,
    TodayResponse,
)
from advent_sphere.shared.auth import get_edit_id, verify_edit_id, secrets_match
from advent_sphere.shared.database import get_db
from advent_sphere.users.models import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rooms", tags=["rooms"])


def get_room_or_404(db: Session, room_id: int) -> Room:
    room = db.get(Room, room_id)
    if not room:
        raise HTTPException(status_code=404, detail="Room not found")
    return room


def get_editable_room(db: Session, room_id: int, edit_id: str) -> Room:
    """Room lookup for write endpoints: 404 first, then 401 on a wrong edit id."""
    room = get_room_or_404(db, room_id)
    verify_edit_id(room.edit_id, edit_id)
    return room


# ──────────────────────────────────────────────────────────────────────────────
# Public endpoints
# ──────────────────────────────────────────────────────────────────────────────

@router.post("", response_model=RoomCreated, status_code=201)
def create_room(room_data: RoomCreate, db: Session = Depends(get_db)):
    """
    Create a room and schedule its snowdome parts.
    The returned edit_id is the only credential for editing the room.
    """
    if not db.get(User, room_data.owner_id):
        raise HTTPException(status_code=404, detail="Owner not found")

    room = Room(
        owner_id=room_data.owner_id,
        edit_id=secrets.token_urlsafe(24),
        is_anonymous=room_data.is_anonymous,
        start_at=as_utc(room_data.start_at),
        item_get_time=room_data.item_get_time,
        generate_count=0,
    )
    room.password = room_data.password
    db.add(room)
    db.flush()

    create_snowdome_track(db, room, random.Random())
    db.commit()
    db.refresh(room)

    logger.info(f"Created room {room.id} for owner {room.owner_id}")
    return RoomCreated(id=room.id, edit_id=room.edit_id)


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(room_id: int, db: Session = Depends(get_db)):
    return get_room_or_404(db, room_id)


@router.get("/{room_id}/password-protected", response_model=PasswordProtectedResponse)
def get_password_protected(room_id: int, db: Session = Depends(get_db)):
    room = get_room_or_404(db, room_id)
    return PasswordProtectedResponse(is_password_protected=room.is_password_protected)


@router.post("/{room_id}/verify-password", status_code=204)
def verify_password(room_id: int, body: PasswordVerify, db: Session = Depends(get_db)):
    """204 when the passphrase matches (or the room has none), 401 otherwise."""
    room = get_room_or_404(db, room_id)
    if not room.is_password_protected:
        return Response(status_code=204)

    if not secrets_match(room.password, body.password):
        logger.warning(f"Wrong password for room {room_id}")
        raise HTTPException(
            status_code=401,
            detail={"message": "Invalid password", "category": "security"},
        )
    return Response(status_code=204)


@router.get("/{room_id}/today", response_model=TodayResponse)
def get_today(room_id: int, db: Session = Depends(get_db)):
    """Server-side day number, so clients with a skewed clock agree on 'today'."""
    get_room_or_404(db, room_id)
    store = SqlCalendarStore(db)
    room = store.fetch_room(room_id)
    now = utc_now()

    item = todays_openable_item(room, store.fetch_calendar_items(room_id), now)
    return TodayResponse(
        today_day=today_day(room.start_at, now),
        openable_calendar_item_id=item.id if item else None,
    )


# ──────────────────────────────────────────────────────────────────────────────
# Owner endpoints (X-Edit-Id required)
# ──────────────────────────────────────────────────────────────────────────────

@router.patch("/{room_id}", response_model=RoomResponse)
def update_room(
    room_id: int,
    room_data: RoomUpdate,
    edit_id: str = Depends(get_edit_id),
    db: Session = Depends(get_db),
):
    room = get_editable_room(db, room_id, edit_id)

    update_data = room_data.model_dump(exclude_unset=True)
    if "is_anonymous" in update_data and update_data["is_anonymous"] is None:
        raise HTTPException(status_code=400, detail="is_anonymous cannot be null")

    # Setting the password property encrypts it; null or "" removes it
    for key, value in update_data.items():
        setattr(room, key, value)

    db.commit()
    db.refresh(room)
    return room


@router.delete("/{room_id}", status_code=204)
def delete_room(
    room_id: int,
    edit_id: str = Depends(get_edit_id),
    db: Session = Depends(get_db),
):
    """Delete a room with its calendar items and uploaded photos."""
    room = get_editable_room(db, room_id, edit_id)
    deleted_items = delete_room_calendar_items(db, room.id)
    db.delete(room)
    db.commit()
    logger.info(f"Deleted room {room_id} with {deleted_items} calendar items")
