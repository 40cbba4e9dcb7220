"""
Test configuration

Environment is set before the application is imported: a file-backed
SQLite database and an upload directory in a temp dir.
"""
import os
import shutil
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="advent-sphere-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["UPLOAD_BASE_URL"] = "https://assets.example.test"
os.environ["ENCRYPTION_KEY"] = "test-encryption-key"
os.environ["ENVIRONMENT"] = "development"
os.environ.pop("INTERNAL_API_KEY", None)

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from advent_sphere.main import app  # noqa: E402
from advent_sphere.acquisition.models import CalendarItemSnapshot, RoomSnapshot  # noqa: E402
from advent_sphere.acquisition.results import PersistenceError  # noqa: E402
from advent_sphere.acquisition.store import CalendarStore  # noqa: E402
from advent_sphere.items.models import Item  # noqa: E402
from advent_sphere.shared.database import Base, SessionLocal, engine  # noqa: E402
from advent_sphere.users.models import User  # noqa: E402

START = datetime(2025, 12, 1, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def fresh_database():
    """Recreate every table and empty the upload dir before each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    shutil.rmtree(os.environ["UPLOAD_DIR"], ignore_errors=True)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def owner(db):
    user = User(id="owner-1", name="Alice")
    db.add(user)
    db.commit()
    return user.id


@pytest.fixture
def catalog(db):
    """A small catalog: two regular items, a photo frame and two snowdome parts."""
    items = {
        "tree": Item(name="Tree", description="A small tree", type="christmas"),
        "star": Item(name="Star", description="A shiny star", type="sticker"),
        "frame": Item(name="Frame", description="Photo frame", type="photo_frame"),
        "dome_base": Item(name="Dome base", description="Snowdome base", type="snowdome"),
        "dome_glass": Item(name="Dome glass", description="Snowdome glass", type="snowdome"),
    }
    db.add_all(items.values())
    db.commit()
    return {key: item.id for key, item in items.items()}


@pytest.fixture
def make_room(client, owner):
    """Create a room through the API; returns (room_id, edit_id)."""
    def _make_room(**overrides):
        payload = {"owner_id": owner, "start_at": START.isoformat(), "is_anonymous": False}
        payload.update(overrides)
        response = client.post("/rooms", json=payload)
        assert response.status_code == 201, response.text
        body = response.json()
        return body["id"], body["edit_id"]
    return _make_room


# ──────────────────────────────────────────────────────────────────────────────
# In-memory calendar store for the acquisition core
# ──────────────────────────────────────────────────────────────────────────────

def snapshot(id, day, item_type="christmas", is_opened=False, position=None,
             rotation=None, bundle_id=None, hour=9, room_id=1):
    """Calendar item revealed at `hour` o'clock UTC on `day` of a room starting at START."""
    return CalendarItemSnapshot(
        id=id,
        room_id=room_id,
        item_type=item_type,
        item_name=f"item-{id}",
        open_date=START + timedelta(days=day - 1, hours=hour),
        is_opened=is_opened,
        position=position,
        rotation=rotation,
        bundle_id=bundle_id,
    )


class FakeCalendarStore(CalendarStore):
    """
    Dict-backed store. Ids in `fail_ids` raise PersistenceError on update;
    per-item bundle writes come from the base class, so they can be partial.
    """

    def __init__(self, items=(), snow_dome_parts_last_date=None, room_id=1):
        self.room = RoomSnapshot(
            id=room_id, start_at=START, snow_dome_parts_last_date=snow_dome_parts_last_date
        )
        self.items = {item.id: item for item in items}
        self.fail_ids = set()
        self.writes = []
        self.invalidations = 0

    def fetch_room(self, room_id):
        return self.room

    def fetch_calendar_items(self, room_id):
        return sorted(self.items.values(), key=lambda item: (item.open_date, item.id))

    def update_calendar_item(self, room_id, calendar_item_id, fields):
        if calendar_item_id in self.fail_ids or calendar_item_id not in self.items:
            raise PersistenceError(f"write of {calendar_item_id} failed",
                                   calendar_item_id=calendar_item_id)
        self.writes.append((calendar_item_id, dict(fields)))
        updated = self.items[calendar_item_id].model_copy(update={
            key: tuple(value) if key in ("position", "rotation") and value is not None else value
            for key, value in fields.items()
        })
        self.items[calendar_item_id] = updated
        return updated

    def create_calendar_item(self, room_id, fields):
        new_id = max(self.items, default=0) + 1
        created = CalendarItemSnapshot(id=new_id, room_id=room_id, **fields)
        self.items[new_id] = created
        return created

    def invalidate(self, room_id):
        self.invalidations += 1


@pytest.fixture
def fake_store():
    return FakeCalendarStore
