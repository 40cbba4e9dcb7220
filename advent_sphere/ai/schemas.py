"""
Pydantic schemas for the AI API.
"""
from typing import Literal
from pydantic import BaseModel, Field


class CreatePhotoRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=2000)
    room_id: int


class CreatePhotoResponse(BaseModel):
    """image_data is a data URI: data:image/jpeg;charset=utf-8;base64,..."""
    image_data: str


class HistoryMessage(BaseModel):
    role: Literal["user", "model"]
    content: str


class CreatePromptRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=2000)
    history: list[HistoryMessage] = Field(default_factory=list)


class CreatePromptResponse(BaseModel):
    prompt: str
    feedback: str
