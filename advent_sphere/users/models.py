"""
User models
"""
from sqlalchemy import Column, String, DateTime, func
from advent_sphere.shared.database import Base

# Owner of auto-generated calendar tracks such as snowdome parts
SYSTEM_USER_ID = "system"
SYSTEM_USER_NAME = "Advent Sphere"


class User(Base):
    """
    A participant. The id is generated by the client and kept in local storage.
    """
    __tablename__ = "users"

    id = Column(String(100), primary_key=True)
    name = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


def get_or_create_system_user(db) -> User:
    """Return the sentinel user, creating it on first use (not committed)."""
    user = db.get(User, SYSTEM_USER_ID)
    if user is None:
        user = User(id=SYSTEM_USER_ID, name=SYSTEM_USER_NAME)
        db.add(user)
        db.flush()
    return user
