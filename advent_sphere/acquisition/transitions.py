"""
Inventory/placement transitions.

Every write sets is_opened and position in the same record update, so an
item is never stored placed-but-unopened. None of these writes sets
is_opened to false. After a write that changed at least one record the
store is told to invalidate its room views.
"""
import logging
from typing import Iterable, Sequence

from advent_sphere.acquisition.bundles import dedupe_by_id, parts_at_position
from advent_sphere.acquisition.models import CalendarItemSnapshot
from advent_sphere.acquisition.results import OperationResult, PersistenceError
from advent_sphere.acquisition.store import CalendarStore

logger = logging.getLogger(__name__)


def _vector(values: Sequence[float]) -> list[float]:
    values = [float(v) for v in values]
    if len(values) != 3:
        raise ValueError(f"Expected 3 components, got {len(values)}")
    return values


def _write_one(store: CalendarStore, room_id: int, calendar_item_id: int,
               fields: dict) -> OperationResult:
    try:
        updated = store.update_calendar_item(room_id, calendar_item_id, fields)
    except PersistenceError as e:
        logger.warning(f"Calendar item {calendar_item_id} write failed: {e}")
        return OperationResult.failure([calendar_item_id], str(e))

    store.invalidate(room_id)
    return OperationResult.success([updated])


def _write_many(store: CalendarStore, room_id: int, calendar_item_ids: list[int],
                fields: dict) -> OperationResult:
    if not calendar_item_ids:
        return OperationResult.success([])

    result = OperationResult.from_bundle_write(
        store.update_calendar_items(room_id, calendar_item_ids, fields)
    )
    if result.updated:
        store.invalidate(room_id)
    if result.is_partial:
        logger.error(
            f"Snowdome bundle in room {room_id} partially written; "
            f"failed parts: {result.failed_ids}"
        )
    return result


def place_item(store: CalendarStore, room_id: int, calendar_item_id: int,
               position: Sequence[float], rotation: Sequence[float]) -> OperationResult:
    return _write_one(store, room_id, calendar_item_id, {
        "is_opened": True,
        "position": _vector(position),
        "rotation": _vector(rotation),
    })


def skip_placement(store: CalendarStore, room_id: int, calendar_item_id: int) -> OperationResult:
    """Mark opened and keep in the inventory."""
    return _write_one(store, room_id, calendar_item_id, {
        "is_opened": True,
        "position": None,
        "rotation": None,
    })


def return_to_inventory(store: CalendarStore, room_id: int, calendar_item_id: int) -> OperationResult:
    return _write_one(store, room_id, calendar_item_id, {
        "position": None,
        "rotation": None,
    })


def place_bundle(store: CalendarStore, room_id: int, parts: Iterable[CalendarItemSnapshot],
                 position: Sequence[float], rotation: Sequence[float]) -> OperationResult:
    """Give every part of a resolved bundle the same position and rotation."""
    ids = [part.id for part in dedupe_by_id(parts)]
    return _write_many(store, room_id, ids, {
        "is_opened": True,
        "position": _vector(position),
        "rotation": _vector(rotation),
    })


def return_bundle_to_inventory(store: CalendarStore, room_id: int,
                               items: Iterable[CalendarItemSnapshot],
                               position: Sequence[float],
                               bundle_id=None) -> OperationResult:
    """Put away every snowdome part placed at `position`."""
    parts = parts_at_position(items, position, bundle_id)
    return _write_many(store, room_id, [part.id for part in parts], {
        "position": None,
        "rotation": None,
    })
