"""
Advent Sphere REST API client used as a calendar store.
"""
import logging
from datetime import datetime
from typing import Any, Optional

import requests

from advent_sphere.acquisition.models import CalendarItemSnapshot, RoomSnapshot
from advent_sphere.acquisition.results import BundleWrite, PersistenceError
from advent_sphere.acquisition.store import CalendarStore

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


def _jsonable(fields: dict) -> dict:
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in fields.items()
    }


def room_from_payload(payload: dict) -> RoomSnapshot:
    return RoomSnapshot(
        id=payload["id"],
        start_at=payload["start_at"],
        snow_dome_parts_last_date=payload.get("snow_dome_parts_last_date"),
        is_anonymous=payload.get("is_anonymous", False),
    )


def calendar_item_from_payload(payload: dict) -> CalendarItemSnapshot:
    item = payload.get("item") or {}
    return CalendarItemSnapshot(
        id=payload["id"],
        room_id=payload["room_id"],
        item_type=item.get("type", ""),
        item_name=item.get("name", ""),
        open_date=payload["open_date"],
        is_opened=payload.get("is_opened", False),
        position=payload.get("position"),
        rotation=payload.get("rotation"),
        bundle_id=payload.get("bundle_id"),
        image_id=payload.get("image_id"),
        user_id=payload.get("user_id"),
    )


class HttpCalendarStore(CalendarStore):
    """
    Calendar store over the REST API.

    Bundle updates use the bulk PATCH endpoint, which the server applies in
    one transaction. Room snapshots are cached until invalidate().
    """

    def __init__(self, base_url: str, session: Optional[requests.Session] = None,
                 edit_id: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.edit_id = edit_id
        self.timeout = timeout
        self._rooms: dict[int, RoomSnapshot] = {}

    def _request(self, method: str, path: str, calendar_item_id: Optional[int] = None,
                 **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        headers = kwargs.pop("headers", {})
        if self.edit_id:
            headers["X-Edit-Id"] = self.edit_id

        try:
            response = self.session.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
            response.raise_for_status()
        except requests.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            logger.error(f"{method} {path} failed with HTTP {status_code}")
            raise PersistenceError(
                f"{method} {path} failed with HTTP {status_code}",
                calendar_item_id=calendar_item_id,
                status_code=status_code,
            ) from e
        except requests.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            raise PersistenceError(
                f"{method} {path} failed: {e}", calendar_item_id=calendar_item_id
            ) from e

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def fetch_room(self, room_id: int) -> RoomSnapshot:
        if room_id not in self._rooms:
            self._rooms[room_id] = room_from_payload(self._request("GET", f"/rooms/{room_id}"))
        return self._rooms[room_id]

    def fetch_calendar_items(self, room_id: int) -> list[CalendarItemSnapshot]:
        payload = self._request("GET", f"/rooms/{room_id}/calendar-items")
        return [calendar_item_from_payload(entry) for entry in payload]

    def update_calendar_item(self, room_id, calendar_item_id, fields):
        payload = self._request(
            "PATCH",
            f"/rooms/{room_id}/calendar-items/{calendar_item_id}",
            calendar_item_id=calendar_item_id,
            json=_jsonable(fields),
        )
        return calendar_item_from_payload(payload)

    def update_calendar_items(self, room_id, calendar_item_ids, fields):
        calendar_item_ids = list(calendar_item_ids)
        try:
            payload = self._request(
                "PATCH",
                f"/rooms/{room_id}/calendar-items",
                json={"ids": calendar_item_ids, "calendar_item": _jsonable(fields)},
            )
        except PersistenceError as e:
            return BundleWrite(failed={cid: str(e) for cid in calendar_item_ids})
        return BundleWrite(updated=[calendar_item_from_payload(entry) for entry in payload])

    def create_calendar_item(self, room_id, fields):
        created = self._request("POST", f"/rooms/{room_id}/calendar-items", json=_jsonable(fields))
        payload = self._request("GET", f"/rooms/{room_id}/calendar-items/{created['id']}")
        return calendar_item_from_payload(payload)

    def invalidate(self, room_id: int) -> None:
        self._rooms.pop(room_id, None)
