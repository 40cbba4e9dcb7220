"""
Calendar item models

One scheduled reveal slot of a room: binds an open date to a catalog item
and tracks whether it was opened and where it was placed in the 3D room.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON, ForeignKey, func
from sqlalchemy.orm import relationship
from advent_sphere.shared.database import Base
from advent_sphere.items.models import Item
from advent_sphere.users.models import User


class CalendarItem(Base):
    """
    - is_opened: becomes true once and never reverts
    - position: [x, y, z] when placed in the room, None while in the inventory
    - rotation: [x, y, z], only meaningful with a position
    - image_id: uploaded/generated photo for photo frames
    - bundle_id: shared by the parts of a snowdome bundle
    """
    __tablename__ = "calendar_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False, index=True)
    user_id = Column(String(100), ForeignKey("users.id"), nullable=False)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    open_date = Column(DateTime(timezone=True), nullable=False)
    is_opened = Column(Boolean, nullable=False, default=False)
    position = Column(JSON, nullable=True)
    rotation = Column(JSON, nullable=True)
    image_id = Column(String(64), nullable=True)
    bundle_id = Column(String(64), nullable=True, index=True)

    item = relationship(Item, lazy="joined")
    user = relationship(User, lazy="joined")
