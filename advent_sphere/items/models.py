"""
Catalog item models

A catalog item is a reusable definition (3D model, sticker, photo frame,
snowdome part...) referenced by many calendar items. Its binary assets live
in object storage under item/object and item/thumbnail.
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, func
from advent_sphere.shared.database import Base

PHOTO_FRAME_TYPE = "photo_frame"
SNOWDOME_TYPE = "snowdome"


class Item(Base):
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    type = Column(String(50), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
        }
