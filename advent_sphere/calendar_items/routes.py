"""
Calendar Items API

Scheduled reveal slots of a room. Scheduling and removing slots (and
setting their photos) is the owner's job and needs X-Edit-Id; opening and
placing items is done by every participant through PATCH, which also
needs X-Edit-Id when it reschedules or reassigns an item.
"""
import base64
import binascii
import logging
from typing import Optional
from uuid import uuid4
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from advent_sphere.acquisition.calendar_days import as_utc, day_number, is_within_span
from advent_sphere.calendar_items.models import CalendarItem
from advent_sphere.calendar_items.schemas import (
    CalendarItemBulkUpdate,
    CalendarItemCreate,
    CalendarItemCreated,
    CalendarItemResponse,
    CalendarItemUpdate,
    ImageDataUpload,
    ImageUploadResponse,
)
from advent_sphere.calendar_items.service import (
    CalendarItemConflict,
    CalendarItemNotFound,
    InvalidCalendarItemUpdate,
    SCHEDULING_FIELDS,
    get_calendar_item,
    to_response,
    update_calendar_items,
)
from advent_sphere.items.models import Item, PHOTO_FRAME_TYPE, SNOWDOME_TYPE
from advent_sphere.rooms.models import Room, ROOM_SPAN_DAYS
from advent_sphere.rooms.routes import get_editable_room, get_room_or_404
from advent_sphere.rooms.schedule import reveal_at
from advent_sphere.shared import storage
from advent_sphere.shared.auth import get_edit_id, get_optional_edit_id, verify_edit_id
from advent_sphere.shared.database import get_db
from advent_sphere.shared.errors import log_and_sanitize_error
from advent_sphere.users.models import User

logger = logging.getLogger(__name__)

MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5 MB
DATA_URI_TYPES = {"image/png", "image/jpeg"}

router = APIRouter(prefix="/rooms/{room_id}/calendar-items", tags=["calendar_items"])


def _room_items(db: Session, room_id: int):
    return (
        db.query(CalendarItem)
        .filter(CalendarItem.room_id == room_id)
        .order_by(CalendarItem.open_date.asc(), CalendarItem.id.asc())
    )


def _get_or_404(db: Session, room_id: int, calendar_item_id: int) -> CalendarItem:
    try:
        return get_calendar_item(db, room_id, calendar_item_id)
    except CalendarItemNotFound:
        raise HTTPException(status_code=404, detail="Calendar item not found")


def _check_references(db: Session, fields: dict) -> None:
    if fields.get("user_id") is not None and not db.get(User, fields["user_id"]):
        raise HTTPException(status_code=404, detail="User not found")
    if fields.get("item_id") is not None and not db.get(Item, fields["item_id"]):
        raise HTTPException(status_code=404, detail="Item not found")


def _update_fields(update: CalendarItemUpdate) -> dict:
    fields = update.model_dump(exclude_unset=True)
    for key in ("position", "rotation"):
        if fields.get(key) is not None:
            fields[key] = list(fields[key])
    return fields


def _check_scheduling_access(room: Room, fields: dict, edit_id: Optional[str]) -> None:
    """Rescheduling or reassigning an item needs the room's edit id."""
    if not SCHEDULING_FIELDS & set(fields):
        return
    verify_edit_id(room.edit_id, edit_id)


def _apply(db: Session, room_id: int, calendar_item_ids: list[int], fields: dict):
    """Update and commit, or roll back and raise the matching HTTP error."""
    _check_references(db, fields)
    try:
        rows = update_calendar_items(db, room_id, calendar_item_ids, fields)
        db.commit()
    except CalendarItemNotFound as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidCalendarItemUpdate as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    except CalendarItemConflict as e:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(e))

    for row in rows:
        db.refresh(row)
    return rows


def _decode_data_uri(image_data: str) -> bytes:
    """Bytes of a base64 image data URI such as data:image/jpeg;charset=utf-8;base64,..."""
    header, sep, payload = image_data.partition(",")
    params = header[len("data:"):].split(";") if header.startswith("data:") else []
    if not sep or not params or params[0] not in DATA_URI_TYPES or params[-1] != "base64":
        raise HTTPException(status_code=400, detail="image_data must be a base64 PNG or JPEG data URI")

    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="image_data is not valid base64")


async def _read_image(request: Request) -> bytes:
    """PNG from a multipart `file` field, or a data URI from a JSON body."""
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        upload = form.get("file")
        if upload is None or isinstance(upload, str):
            raise HTTPException(status_code=400, detail="Missing file")
        if upload.content_type != "image/png":
            raise HTTPException(status_code=400, detail="Invalid file type. Allowed: image/png")
        contents = await upload.read()
    else:
        try:
            body = ImageDataUpload.model_validate(await request.json())
        except (ValueError, ValidationError):
            raise HTTPException(status_code=400, detail="Expected a PNG upload or JSON with image_data")
        contents = _decode_data_uri(body.image_data)

    if not contents:
        raise HTTPException(status_code=400, detail="Empty image")
    if len(contents) > MAX_IMAGE_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"File too large. Max size: {MAX_IMAGE_SIZE // (1024*1024)} MB",
        )
    return contents


# ──────────────────────────────────────────────────────────────────────────────
# Participant endpoints
# ──────────────────────────────────────────────────────────────────────────────

@router.get("", response_model=list[CalendarItemResponse])
def list_calendar_items(room_id: int, db: Session = Depends(get_db)):
    """Every calendar item of the room, ordered by reveal instant."""
    room = get_room_or_404(db, room_id)
    return [to_response(ci, room.is_anonymous) for ci in _room_items(db, room_id).all()]


@router.get("/inventory", response_model=list[CalendarItemResponse])
def list_inventory(room_id: int, db: Session = Depends(get_db)):
    """Opened items that are not placed in the room."""
    room = get_room_or_404(db, room_id)
    rows = (
        _room_items(db, room_id)
        .filter(CalendarItem.is_opened == True)
        .all()
    )
    return [to_response(ci, room.is_anonymous) for ci in rows if ci.position is None]


@router.get("/placed", response_model=list[CalendarItemResponse])
def list_placed(room_id: int, db: Session = Depends(get_db)):
    room = get_room_or_404(db, room_id)
    rows = _room_items(db, room_id).all()
    return [to_response(ci, room.is_anonymous) for ci in rows if ci.position is not None]


@router.get("/{calendar_item_id}", response_model=CalendarItemResponse)
def get_calendar_item_route(room_id: int, calendar_item_id: int, db: Session = Depends(get_db)):
    room = get_room_or_404(db, room_id)
    return to_response(_get_or_404(db, room_id, calendar_item_id), room.is_anonymous)


@router.patch("", response_model=list[CalendarItemResponse])
def bulk_update_calendar_items(
    room_id: int,
    body: CalendarItemBulkUpdate,
    edit_id: Optional[str] = Depends(get_optional_edit_id),
    db: Session = Depends(get_db),
):
    """Apply one update to several items; either all of them change or none."""
    room = get_room_or_404(db, room_id)
    fields = _update_fields(body.calendar_item)
    _check_scheduling_access(room, fields, edit_id)
    rows = _apply(db, room_id, body.ids, fields)
    logger.info(f"Bulk updated calendar items {[row.id for row in rows]} in room {room_id}")
    return [to_response(row, room.is_anonymous) for row in rows]


@router.patch("/{calendar_item_id}", response_model=CalendarItemResponse)
def update_calendar_item(
    room_id: int,
    calendar_item_id: int,
    body: CalendarItemUpdate,
    edit_id: Optional[str] = Depends(get_optional_edit_id),
    db: Session = Depends(get_db),
):
    """
    Partial update. Fields sent as null are cleared.
    Opening is one-way, and an item has to be opened before it gets a position.
    Changing user_id, item_id or open_date needs X-Edit-Id; a new open_date
    must stay within the room's days and off days taken by other items.
    """
    room = get_room_or_404(db, room_id)
    fields = _update_fields(body)
    _check_scheduling_access(room, fields, edit_id)
    rows = _apply(db, room_id, [calendar_item_id], fields)
    return to_response(rows[0], room.is_anonymous)


# ──────────────────────────────────────────────────────────────────────────────
# Owner endpoints (X-Edit-Id required)
# ──────────────────────────────────────────────────────────────────────────────

@router.post("", response_model=CalendarItemCreated, status_code=201)
def create_calendar_item(
    room_id: int,
    body: CalendarItemCreate,
    edit_id: str = Depends(get_edit_id),
    db: Session = Depends(get_db),
):
    """
    Schedule a catalog item for a day of the room.
    Given a day, the reveal instant follows the room's daily reveal time.
    """
    room: Room = get_editable_room(db, room_id, edit_id)
    _check_references(db, {"user_id": body.user_id, "item_id": body.item_id})

    if body.day is not None:
        day = body.day
        if not is_within_span(day, ROOM_SPAN_DAYS):
            raise HTTPException(status_code=400, detail=f"Day must be between 1 and {ROOM_SPAN_DAYS}")
        open_date = reveal_at(room.start_at, day, room.item_get_time)
    else:
        open_date = as_utc(body.open_date)
        day = day_number(room.start_at, open_date)
        if not is_within_span(day, ROOM_SPAN_DAYS):
            raise HTTPException(
                status_code=400,
                detail=f"open_date falls on day {day}, outside 1-{ROOM_SPAN_DAYS}",
            )

    for existing in _room_items(db, room_id).all():
        if existing.item.type == SNOWDOME_TYPE:
            continue
        if day_number(room.start_at, existing.open_date) == day:
            raise HTTPException(status_code=409, detail=f"Day {day} already has a calendar item")

    calendar_item = CalendarItem(
        room_id=room_id,
        user_id=body.user_id,
        item_id=body.item_id,
        open_date=open_date,
        image_id=body.image_id,
        is_opened=False,
    )
    db.add(calendar_item)
    db.commit()
    db.refresh(calendar_item)

    logger.info(f"Scheduled calendar item {calendar_item.id} in room {room_id} on day {day}")
    return CalendarItemCreated(id=calendar_item.id)


@router.delete("/{calendar_item_id}", status_code=204)
def delete_calendar_item(
    room_id: int,
    calendar_item_id: int,
    edit_id: str = Depends(get_edit_id),
    db: Session = Depends(get_db),
):
    get_editable_room(db, room_id, edit_id)
    calendar_item = _get_or_404(db, room_id, calendar_item_id)
    image_id = calendar_item.image_id

    db.delete(calendar_item)
    db.commit()
    if image_id:
        storage.delete_object(storage.user_image_key(image_id))


@router.post("/{calendar_item_id}/image", response_model=ImageUploadResponse)
async def upload_calendar_item_image(
    room_id: int,
    calendar_item_id: int,
    request: Request,
    edit_id: str = Depends(get_edit_id),
    db: Session = Depends(get_db),
):
    """
    Set the photo of a photo frame, uploaded as a PNG file or sent as the
    data URI returned by /ai/create-photo. Replaces any previous photo.
    """
    get_editable_room(db, room_id, edit_id)
    calendar_item = _get_or_404(db, room_id, calendar_item_id)
    if calendar_item.item.type != PHOTO_FRAME_TYPE:
        raise HTTPException(status_code=400, detail="Only photo frames can hold an image")

    contents = await _read_image(request)

    image_id = uuid4().hex
    try:
        url = await storage.put_object(storage.user_image_key(image_id), contents)
    except storage.StorageError as e:
        message, _ = log_and_sanitize_error(e, "Image upload")
        raise HTTPException(status_code=500, detail=message)

    previous_image_id = calendar_item.image_id
    calendar_item.image_id = image_id
    db.commit()
    if previous_image_id:
        storage.delete_object(storage.user_image_key(previous_image_id))

    logger.info(f"Stored image {image_id} for calendar item {calendar_item_id}")
    return ImageUploadResponse(image_id=image_id, url=url)
