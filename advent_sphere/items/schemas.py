"""
Pydantic schemas for the catalog items API.

Create and update requests are multipart forms (they carry files), so only
responses are modelled here.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class ItemSummary(BaseModel):
    """Catalog fields joined into calendar item responses."""
    id: int
    name: str
    description: str
    type: str

    class Config:
        from_attributes = True


class ItemResponse(ItemSummary):
    created_at: Optional[datetime] = None


class ItemCreated(BaseModel):
    id: int
    name: str
