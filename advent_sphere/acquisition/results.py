"""
Outcome types of acquisition writes.

Stores raise PersistenceError; the flow and the transition functions turn
it into an OperationResult so callers decide whether to retry, roll back
their UI or show a message.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from advent_sphere.acquisition.models import CalendarItemSnapshot


class PersistenceError(Exception):
    """A read or write against the calendar store failed."""

    def __init__(self, message: str, calendar_item_id: Optional[int] = None,
                 status_code: Optional[int] = None):
        super().__init__(message)
        self.calendar_item_id = calendar_item_id
        self.status_code = status_code


class ResultStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
    # Some records of a bundle were written, others were not
    PARTIAL = "partial"


class BundleWrite(BaseModel):
    """Per-record outcome of a multi-record update."""
    updated: list[CalendarItemSnapshot] = Field(default_factory=list)
    failed: dict[int, str] = Field(default_factory=dict)


class OperationResult(BaseModel):
    status: ResultStatus
    updated: list[CalendarItemSnapshot] = Field(default_factory=list)
    failed_ids: list[int] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.OK

    @property
    def is_partial(self) -> bool:
        return self.status == ResultStatus.PARTIAL

    @classmethod
    def success(cls, updated: list[CalendarItemSnapshot]) -> "OperationResult":
        return cls(status=ResultStatus.OK, updated=updated)

    @classmethod
    def failure(cls, failed_ids: list[int], error: str) -> "OperationResult":
        return cls(status=ResultStatus.FAILED, failed_ids=failed_ids, error=error)

    @classmethod
    def from_bundle_write(cls, write: BundleWrite) -> "OperationResult":
        if not write.failed:
            return cls.success(write.updated)

        failed_ids = sorted(write.failed)
        error = "; ".join(f"{cid}: {msg}" for cid, msg in sorted(write.failed.items()))
        status = ResultStatus.PARTIAL if write.updated else ResultStatus.FAILED
        return cls(status=status, updated=write.updated, failed_ids=failed_ids, error=error)
