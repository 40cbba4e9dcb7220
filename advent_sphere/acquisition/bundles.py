"""
Snowdome bundle resolution

The four snowdome parts of a room are placed, moved and put away together.
Membership is the shared bundle_id when the parts carry one, otherwise every
snowdome-typed item of the room. Among members, the parts currently placed
together are the ones whose positions match within POSITION_EPSILON.
"""
from typing import Iterable, Optional, Sequence

from advent_sphere.acquisition.models import CalendarItemSnapshot

POSITION_EPSILON = 0.001


def same_position(
    a: Optional[Sequence[float]],
    b: Optional[Sequence[float]],
    epsilon: float = POSITION_EPSILON,
) -> bool:
    if a is None or b is None or len(a) != 3 or len(b) != 3:
        return False
    return all(abs(x - y) < epsilon for x, y in zip(a, b))


def _is_member(item: CalendarItemSnapshot, bundle_id: Optional[str]) -> bool:
    if not item.is_snowdome:
        return False
    return bundle_id is None or item.bundle_id == bundle_id


def dedupe_by_id(items: Iterable[CalendarItemSnapshot]) -> list[CalendarItemSnapshot]:
    seen = set()
    unique = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        unique.append(item)
    return unique


def inventory_parts(
    items: Iterable[CalendarItemSnapshot],
    bundle_id: Optional[str] = None,
) -> list[CalendarItemSnapshot]:
    """Opened snowdome parts that are not placed yet."""
    return [
        item for item in items
        if _is_member(item, bundle_id) and item.is_opened and not item.is_placed
    ]


def parts_at_position(
    items: Iterable[CalendarItemSnapshot],
    position: Sequence[float],
    bundle_id: Optional[str] = None,
) -> list[CalendarItemSnapshot]:
    """Opened snowdome parts placed at `position`."""
    return [
        item for item in items
        if _is_member(item, bundle_id)
        and item.is_opened
        and same_position(item.position, position)
    ]


def resolve_bundle(
    trigger: CalendarItemSnapshot,
    items: Iterable[CalendarItemSnapshot],
) -> list[CalendarItemSnapshot]:
    """
    Parts that move together with `trigger`.

    A placed trigger brings every part sharing its position (reposition).
    An unplaced trigger brings every opened unplaced part, plus itself.
    """
    items = list(items)
    if trigger.is_placed:
        parts = parts_at_position(items, trigger.position, trigger.bundle_id)
        return dedupe_by_id(parts) or [trigger]

    return dedupe_by_id([*inventory_parts(items, trigger.bundle_id), trigger])
