"""
Item acquisition flow

State machine for one room session, from clicking a drawer through the
reveal dialog to placing the item in the room or keeping it in the
inventory:

    idle --day clicked--> get_modal --next--> placement ----------> completed
                                  \\--next--> snowdome_placement --> completed
                                  \\--next (snowdome, not final day)--> completed
    inventory item selected --> placement | snowdome_placement
    completed --settle--> idle            any --dismiss--> idle

The state is an immutable AcquisitionState passed into and returned from
each method. Events that fail a guard return the state unchanged. A failed
write keeps the phase and records the error and the OperationResult.
"""
import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from advent_sphere.acquisition import transitions
from advent_sphere.acquisition.bundles import parts_at_position, resolve_bundle
from advent_sphere.acquisition.calendar_days import day_number, today_day
from advent_sphere.acquisition.models import CalendarItemSnapshot, RoomSnapshot
from advent_sphere.acquisition.openability import can_open_day, item_for_day, todays_openable_item
from advent_sphere.acquisition.results import OperationResult, PersistenceError
from advent_sphere.acquisition.store import CalendarStore

logger = logging.getLogger(__name__)

# Seconds the UI keeps the completed phase before calling settle()
COMPLETED_RESET_DELAY = 0.1


class Phase(str, Enum):
    IDLE = "idle"
    GET_MODAL = "get_modal"
    PLACEMENT = "placement"
    SNOWDOME_PLACEMENT = "snowdome_placement"
    COMPLETED = "completed"


class AcquisitionState(BaseModel):
    model_config = ConfigDict(frozen=True)

    phase: Phase = Phase.IDLE
    target: Optional[CalendarItemSnapshot] = None
    target_day: Optional[int] = None
    error: Optional[str] = None
    last_result: Optional[OperationResult] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


def is_snowdome_final_day(room: RoomSnapshot, calendar_item: CalendarItemSnapshot) -> bool:
    """Whether the item is revealed on the day of the room's last snowdome part."""
    if room.snow_dome_parts_last_date is None:
        return False
    return (
        day_number(room.start_at, calendar_item.open_date)
        == day_number(room.start_at, room.snow_dome_parts_last_date)
    )


class AcquisitionFlow:
    """Drives AcquisitionState transitions and the writes they require."""

    def __init__(self, store: CalendarStore, room_id: int):
        self.store = store
        self.room_id = room_id
        self._pending = False

    @property
    def pending(self) -> bool:
        """True while a write is in flight; confirm/skip/next are ignored meanwhile."""
        return self._pending

    def _load(self) -> tuple[RoomSnapshot, list[CalendarItemSnapshot]]:
        room = self.store.fetch_room(self.room_id)
        return room, self.store.fetch_calendar_items(self.room_id)

    def _write(self, operation: Callable[[], OperationResult]) -> OperationResult:
        self._pending = True
        try:
            return operation()
        finally:
            self._pending = False

    @staticmethod
    def _with_error(state: AcquisitionState, error: str,
                    result: Optional[OperationResult] = None) -> AcquisitionState:
        return state.model_copy(update={"error": error, "last_result": result})

    @staticmethod
    def _after_write(state: AcquisitionState, result: OperationResult) -> AcquisitionState:
        if not result.ok:
            return AcquisitionFlow._with_error(state, result.error or "Write failed", result)
        return AcquisitionState(
            phase=Phase.COMPLETED,
            target=state.target,
            target_day=state.target_day,
            last_result=result,
        )

    # Read-only helpers

    def today_day(self, now: datetime) -> int:
        return today_day(self.store.fetch_room(self.room_id).start_at, now)

    def openable_item(self, now: datetime) -> Optional[CalendarItemSnapshot]:
        room, items = self._load()
        return todays_openable_item(room, items, now)

    # Events

    def day_clicked(self, state: AcquisitionState, day: int, now: datetime) -> AcquisitionState:
        if state.phase != Phase.IDLE:
            return state

        try:
            room, items = self._load()
        except PersistenceError as e:
            logger.warning(f"Could not load room {self.room_id}: {e}")
            return state

        if not can_open_day(room, day, items, now):
            return state

        return AcquisitionState(
            phase=Phase.GET_MODAL,
            target=item_for_day(room, day, items),
            target_day=day,
        )

    def next(self, state: AcquisitionState) -> AcquisitionState:
        if state.phase != Phase.GET_MODAL or state.target is None or self._pending:
            return state

        target = state.target
        if not target.is_snowdome:
            return state.model_copy(update={"phase": Phase.PLACEMENT, "error": None})

        try:
            room = self.store.fetch_room(self.room_id)
        except PersistenceError as e:
            return self._with_error(state, str(e))

        if is_snowdome_final_day(room, target):
            return state.model_copy(update={"phase": Phase.SNOWDOME_PLACEMENT, "error": None})

        # Earlier snowdome parts go straight to the inventory
        result = self._write(
            lambda: transitions.skip_placement(self.store, self.room_id, target.id)
        )
        return self._after_write(state, result)

    def confirm(self, state: AcquisitionState, position: Optional[Sequence[float]],
                rotation: Optional[Sequence[float]]) -> AcquisitionState:
        """Place the target (or its snowdome bundle) at a drop location."""
        if self._pending or state.target is None or position is None:
            return state
        rotation = rotation if rotation is not None else (0.0, 0.0, 0.0)
        target = state.target

        if state.phase == Phase.PLACEMENT:
            result = self._write(
                lambda: transitions.place_item(
                    self.store, self.room_id, target.id, position, rotation
                )
            )
            return self._after_write(state, result)

        if state.phase == Phase.SNOWDOME_PLACEMENT:
            try:
                items = self.store.fetch_calendar_items(self.room_id)
            except PersistenceError as e:
                return self._with_error(state, str(e))

            parts = resolve_bundle(target, items)
            result = self._write(
                lambda: transitions.place_bundle(
                    self.store, self.room_id, parts, position, rotation
                )
            )
            return self._after_write(state, result)

        return state

    def skip(self, state: AcquisitionState) -> AcquisitionState:
        """
        Defer placement: only the target is marked opened and kept in the inventory.

        Skipping while repositioning an already placed item writes nothing and
        returns to idle, like dismiss, so a placed snowdome bundle is never split.
        """
        if self._pending or state.target is None:
            return state
        if state.phase not in (Phase.PLACEMENT, Phase.SNOWDOME_PLACEMENT):
            return state

        target = state.target
        if target.is_placed:
            return AcquisitionState()

        result = self._write(
            lambda: transitions.skip_placement(self.store, self.room_id, target.id)
        )
        return self._after_write(state, result)

    def start_from_inventory(self, state: AcquisitionState,
                             calendar_item: CalendarItemSnapshot) -> AcquisitionState:
        """Enter placement for an opened item picked from the inventory or the room."""
        if state.phase not in (Phase.IDLE, Phase.COMPLETED) or not calendar_item.is_opened:
            return state

        if not calendar_item.is_snowdome:
            return AcquisitionState(phase=Phase.PLACEMENT, target=calendar_item)

        target = calendar_item
        if calendar_item.is_placed:
            # Repositioning: the old bundle is the set of parts at the old position
            try:
                items = self.store.fetch_calendar_items(self.room_id)
            except PersistenceError as e:
                return self._with_error(state, str(e))
            parts = parts_at_position(items, calendar_item.position, calendar_item.bundle_id)
            target = parts[0] if parts else calendar_item

        return AcquisitionState(phase=Phase.SNOWDOME_PLACEMENT, target=target)

    def return_to_inventory(self, calendar_item: CalendarItemSnapshot) -> OperationResult:
        """Take a placed item out of the room; snowdome parts go back together."""
        if self._pending:
            return OperationResult.failure([calendar_item.id], "Another write is in progress")

        if calendar_item.is_snowdome and calendar_item.is_placed:
            try:
                items = self.store.fetch_calendar_items(self.room_id)
            except PersistenceError as e:
                return OperationResult.failure([calendar_item.id], str(e))
            return self._write(
                lambda: transitions.return_bundle_to_inventory(
                    self.store, self.room_id, items,
                    calendar_item.position, calendar_item.bundle_id,
                )
            )

        return self._write(
            lambda: transitions.return_to_inventory(self.store, self.room_id, calendar_item.id)
        )

    def settle(self, state: AcquisitionState) -> AcquisitionState:
        """Leave the completed phase once COMPLETED_RESET_DELAY has elapsed."""
        if state.phase != Phase.COMPLETED:
            return state
        return AcquisitionState()

    def dismiss(self, state: AcquisitionState) -> AcquisitionState:
        """Dialog closed without confirming."""
        return AcquisitionState()
