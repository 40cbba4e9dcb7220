"""
AI API

Photo generation for photo frames (limited per room) and an interactive
prompt helper that turns a theme into an image prompt.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from advent_sphere.ai import client
from advent_sphere.ai.schemas import (
    CreatePhotoRequest,
    CreatePhotoResponse,
    CreatePromptRequest,
    CreatePromptResponse,
)
from advent_sphere.rooms.models import Room, MAX_GENERATE_COUNT
from advent_sphere.shared.database import get_db
from advent_sphere.shared.errors import log_and_sanitize_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/create-photo", response_model=CreatePhotoResponse, status_code=201)
def create_photo(body: CreatePhotoRequest, db: Session = Depends(get_db)):
    """
    Generate a photo for the room. Each room may generate MAX_GENERATE_COUNT
    photos; only successful generations count.
    """
    room = db.get(Room, body.room_id)
    if not room:
        raise HTTPException(status_code=404, detail="Room not found")
    if room.generate_count >= MAX_GENERATE_COUNT:
        raise HTTPException(status_code=403, detail="Image generation limit reached for this room")

    try:
        image = client.generate_image(body.prompt)
    except client.AIServiceError as e:
        message, _ = log_and_sanitize_error(e, "Image generation")
        raise HTTPException(status_code=500, detail=message)

    # Conditional increment so concurrent requests cannot exceed the limit
    updated = (
        db.query(Room)
        .filter(Room.id == room.id, Room.generate_count < MAX_GENERATE_COUNT)
        .update({Room.generate_count: Room.generate_count + 1}, synchronize_session=False)
    )
    db.commit()
    if not updated:
        raise HTTPException(status_code=403, detail="Image generation limit reached for this room")

    logger.info(f"Generated image for room {room.id}")
    return CreatePhotoResponse(image_data=f"data:image/jpeg;charset=utf-8;base64,{image}")


@router.post("/create-prompt", response_model=CreatePromptResponse)
def create_prompt(body: CreatePromptRequest):
    history = [message.model_dump() for message in body.history]
    try:
        result = client.generate_prompt(body.prompt, history)
    except client.AIServiceError as e:
        message, _ = log_and_sanitize_error(e, "Prompt generation")
        raise HTTPException(status_code=500, detail=message)
    return CreatePromptResponse(**result)
