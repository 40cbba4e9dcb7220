"""
Users API
"""
import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from advent_sphere.shared.database import get_db
from advent_sphere.users.models import User, SYSTEM_USER_ID
from advent_sphere.users.schemas import UserCreate, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=201)
def create_user(user_data: UserCreate, db: Session = Depends(get_db)):
    """Register a participant under a client-generated id."""
    if user_data.id == SYSTEM_USER_ID or db.get(User, user_data.id):
        raise HTTPException(status_code=409, detail="User already exists")

    user = User(**user_data.model_dump())
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Created user {user.id}")
    return user


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: str, db: Session = Depends(get_db)):
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
