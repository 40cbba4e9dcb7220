"""
Advent Sphere API

Shared 25-day advent calendar rooms: users, catalog items, rooms, their
calendar items and AI photo generation.

Run with:
    uvicorn advent_sphere.main:app
"""
import logging
from fastapi import FastAPI

from advent_sphere.shared.cors import setup_cors
from advent_sphere.shared.database import check_db_connection, init_db
from advent_sphere.shared.errors import register_exception_handlers
from advent_sphere.shared.security_headers import setup_security_headers
from advent_sphere.ai.routes import router as ai_router
from advent_sphere.calendar_items.routes import router as calendar_items_router
from advent_sphere.items.routes import router as items_router
from advent_sphere.rooms.routes import router as rooms_router
from advent_sphere.users.routes import router as users_router

logger = logging.getLogger("advent-sphere")
logging.basicConfig(level=logging.INFO)

# Create tables
init_db()

app = FastAPI(
    title="Advent Sphere API",
    version="1.0.0",
    description="Advent calendar rooms with collectible 3D items",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

setup_cors(app)
setup_security_headers(app)
register_exception_handlers(app)


@app.get("/health")
def health():
    """Health check endpoint."""
    db_connected = check_db_connection()
    return {
        "status": "ok" if db_connected else "degraded",
        "service": "advent-sphere",
        "database": "connected" if db_connected else "disconnected",
    }


app.include_router(users_router)
app.include_router(items_router)
app.include_router(rooms_router)
app.include_router(calendar_items_router)
app.include_router(ai_router)
