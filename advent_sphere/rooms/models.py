"""
Room models

A room is one 25-day advent calendar instance shared by its participants.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Time, ForeignKey, func
from advent_sphere.shared.database import Base
from advent_sphere.shared.encryption import encrypt_secret, decrypt_secret

ROOM_SPAN_DAYS = 25

# Max AI image generations per room
MAX_GENERATE_COUNT = 5


class Room(Base):
    """
    - start_at: instant of day 1, immutable after creation
    - item_get_time: fixed daily reveal time, None means random per calendar item
    - snow_dome_parts_last_date: reveal instant of the final snowdome part
    - password: optional edit passphrase, encrypted at rest
    """
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    owner_id = Column(String(100), ForeignKey("users.id"), nullable=False, index=True)
    edit_id = Column(String(64), nullable=False, unique=True)
    _password = Column("password", String(500), nullable=True)
    is_anonymous = Column(Boolean, nullable=False, default=False)
    start_at = Column(DateTime(timezone=True), nullable=False, index=True)
    item_get_time = Column(Time, nullable=True)
    generate_count = Column(Integer, nullable=False, default=0)
    snow_dome_parts_last_date = Column(DateTime(timezone=True), nullable=True)

    @property
    def password(self):
        """Decrypted passphrase, or None when the room is not protected."""
        if not self._password:
            return None
        return decrypt_secret(self._password)

    @password.setter
    def password(self, value):
        self._password = encrypt_secret(value) if value else None

    @property
    def is_password_protected(self) -> bool:
        return bool(self._password)
