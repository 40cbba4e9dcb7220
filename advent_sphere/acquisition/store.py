"""
Calendar stores: where the acquisition flow reads snapshots and sends writes.

CalendarStore is the abstract collaborator. Implementations:
- SqlCalendarStore (advent_sphere.acquisition.sql_store): database session
- HttpCalendarStore (advent_sphere.acquisition.client): REST API
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable

from advent_sphere.acquisition.models import CalendarItemSnapshot, RoomSnapshot
from advent_sphere.acquisition.results import BundleWrite, PersistenceError

logger = logging.getLogger(__name__)


class CalendarStore(ABC):
    """
    Read/write access to one deployment's rooms and calendar items.

    Update fields are partial: a key mapped to None clears that field,
    a missing key leaves it untouched.
    """

    @abstractmethod
    def fetch_room(self, room_id: int) -> RoomSnapshot:
        ...

    @abstractmethod
    def fetch_calendar_items(self, room_id: int) -> list[CalendarItemSnapshot]:
        ...

    @abstractmethod
    def update_calendar_item(
        self, room_id: int, calendar_item_id: int, fields: dict[str, Any]
    ) -> CalendarItemSnapshot:
        ...

    def update_calendar_items(
        self, room_id: int, calendar_item_ids: Iterable[int], fields: dict[str, Any]
    ) -> BundleWrite:
        """
        Apply the same fields to several items.

        The default issues one independent update per item and reports
        which ones failed. Stores with transactions override this.
        """
        write = BundleWrite()
        for calendar_item_id in calendar_item_ids:
            try:
                write.updated.append(
                    self.update_calendar_item(room_id, calendar_item_id, fields)
                )
            except PersistenceError as e:
                logger.warning(f"Update of calendar item {calendar_item_id} failed: {e}")
                write.failed[calendar_item_id] = str(e)
        return write

    @abstractmethod
    def create_calendar_item(self, room_id: int, fields: dict[str, Any]) -> CalendarItemSnapshot:
        ...

    def invalidate(self, room_id: int) -> None:
        """Signal that cached views of the room are stale."""
