"""
Catalog Items API

Reusable item definitions with their 3D model and thumbnail files.
Reads are public; writes require the internal API key.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session

from advent_sphere.shared import storage
from advent_sphere.shared.auth import get_api_key
from advent_sphere.shared.database import get_db
from advent_sphere.shared.errors import log_and_sanitize_error
from advent_sphere.calendar_items.models import CalendarItem
from advent_sphere.items.models import Item
from advent_sphere.items.schemas import ItemCreated, ItemResponse

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 50 * 1024 * 1024  # 50 MB, glTF models can be large

router = APIRouter(prefix="/items", tags=["items"])


def _get_item(db: Session, item_id: int) -> Item:
    item = db.get(Item, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    return item


async def _read_upload(file: UploadFile) -> bytes:
    contents = await file.read()
    if not contents:
        raise HTTPException(status_code=400, detail=f"Empty file: {file.filename}")
    if len(contents) > MAX_FILE_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"File too large. Max size: {MAX_FILE_SIZE // (1024*1024)} MB",
        )
    return contents


async def _store_file(prefix: str, item_id: int, file: UploadFile, contents: bytes,
                      default_ext: str) -> str:
    key = f"{prefix}/{item_id}.{storage.file_extension(file.filename, default_ext)}"
    return await storage.put_object(key, contents)


def _delete_item_files(item_id: int) -> None:
    storage.delete_objects_by_stem(storage.ITEM_OBJECT_PREFIX, str(item_id))
    storage.delete_objects_by_stem(storage.ITEM_THUMBNAIL_PREFIX, str(item_id))


# ──────────────────────────────────────────────────────────────────────────────
# Public endpoints
# ──────────────────────────────────────────────────────────────────────────────

@router.get("", response_model=list[ItemResponse])
def list_items(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    type: Optional[str] = Query(None, max_length=50),
    db: Session = Depends(get_db),
):
    """List catalog items sorted by name, optionally filtered by type."""
    query = db.query(Item)
    if type:
        query = query.filter(Item.type == type)
    return query.order_by(Item.name.asc(), Item.id.asc()).limit(limit).offset(offset).all()


@router.get("/{item_id}", response_model=ItemResponse)
def get_item(item_id: int, db: Session = Depends(get_db)):
    return _get_item(db, item_id)


# ──────────────────────────────────────────────────────────────────────────────
# Admin endpoints (API key required)
# ──────────────────────────────────────────────────────────────────────────────

@router.post("", response_model=ItemCreated, status_code=201)
async def create_item(
    name: str = Form(..., min_length=1, max_length=200),
    description: str = Form(""),
    type: str = Form(..., min_length=1, max_length=50),
    object_file: UploadFile = File(...),
    object_thumbnail: UploadFile = File(...),
    api_key: str = Depends(get_api_key),
    db: Session = Depends(get_db),
):
    """
    Create a catalog item and store its files.
    If a file cannot be stored the item row is removed again.
    """
    object_contents = await _read_upload(object_file)
    thumbnail_contents = await _read_upload(object_thumbnail)

    item = Item(name=name, description=description, type=type)
    db.add(item)
    db.commit()
    db.refresh(item)

    try:
        await _store_file(storage.ITEM_OBJECT_PREFIX, item.id, object_file, object_contents, "glb")
        await _store_file(
            storage.ITEM_THUMBNAIL_PREFIX, item.id, object_thumbnail, thumbnail_contents, "png"
        )
    except storage.StorageError as e:
        _delete_item_files(item.id)
        db.delete(item)
        db.commit()
        message, _ = log_and_sanitize_error(e, "Item file upload")
        raise HTTPException(status_code=500, detail=message)

    logger.info(f"Created item {item.id} ({item.type}): {item.name}")
    return ItemCreated(id=item.id, name=item.name)


@router.patch("/{item_id}", response_model=ItemResponse)
async def update_item(
    item_id: int,
    name: Optional[str] = Form(None, min_length=1, max_length=200),
    description: Optional[str] = Form(None),
    type: Optional[str] = Form(None, min_length=1, max_length=50),
    object_file: Optional[UploadFile] = File(None),
    object_thumbnail: Optional[UploadFile] = File(None),
    api_key: str = Depends(get_api_key),
    db: Session = Depends(get_db),
):
    """Update fields and/or replace files. Old files are removed before the new ones are stored."""
    update_data = {
        key: value
        for key, value in (("name", name), ("description", description), ("type", type))
        if value is not None
    }
    if not update_data and object_file is None and object_thumbnail is None:
        raise HTTPException(status_code=400, detail="No fields to update")

    item = _get_item(db, item_id)

    for key, value in update_data.items():
        setattr(item, key, value)
    if update_data:
        db.commit()
        db.refresh(item)

    try:
        if object_file is not None:
            contents = await _read_upload(object_file)
            storage.delete_objects_by_stem(storage.ITEM_OBJECT_PREFIX, str(item.id))
            await _store_file(storage.ITEM_OBJECT_PREFIX, item.id, object_file, contents, "glb")
        if object_thumbnail is not None:
            contents = await _read_upload(object_thumbnail)
            storage.delete_objects_by_stem(storage.ITEM_THUMBNAIL_PREFIX, str(item.id))
            await _store_file(
                storage.ITEM_THUMBNAIL_PREFIX, item.id, object_thumbnail, contents, "png"
            )
    except storage.StorageError as e:
        message, _ = log_and_sanitize_error(e, "Item file update")
        raise HTTPException(status_code=500, detail=message)

    return item


@router.delete("/{item_id}", status_code=204)
def delete_item(
    item_id: int,
    api_key: str = Depends(get_api_key),
    db: Session = Depends(get_db),
):
    """Delete a catalog item and both of its files."""
    item = _get_item(db, item_id)
    if db.query(CalendarItem.id).filter(CalendarItem.item_id == item_id).first():
        raise HTTPException(status_code=409, detail="Item is used by calendar items")

    db.delete(item)
    db.commit()
    _delete_item_files(item_id)
    logger.info(f"Deleted item {item_id}")
