"""
Database configuration and session management

SQLAlchemy engine, session factory and declarative base shared by every
Advent Sphere module. Models live next to their routers.
"""

import os
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import NullPool

# Get database URL from environment variable
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    "postgresql+psycopg2://advent_user:changeme@db:5432/advent_sphere",
)

# Using NullPool for better compatibility with containerized environments
engine = create_engine(
    DATABASE_URL,
    poolclass=NullPool,
    echo=False,  # Set to True for SQL query logging during development
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    Dependency injection for database sessions

    @router.get("/endpoint")
    def endpoint(db: Session = Depends(get_db)):
        ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_connection() -> bool:
    """
    Test database connectivity
    Returns True if connection successful, False otherwise
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False


def init_db() -> None:
    """Create all tables for the models imported so far."""
    # Import models so they register on Base.metadata
    from advent_sphere.users import models as _users  # noqa: F401
    from advent_sphere.items import models as _items  # noqa: F401
    from advent_sphere.rooms import models as _rooms  # noqa: F401
    from advent_sphere.calendar_items import models as _calendar_items  # noqa: F401

    Base.metadata.create_all(bind=engine)
