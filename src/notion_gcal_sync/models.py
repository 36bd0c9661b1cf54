"""Data model shared by the Notion store, the Google Calendar client and the reconciler."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Self

DEFAULT_TITLE = 'Untitled'
"""Placeholder for tasks with an empty title."""


class Classification(str, Enum):
    """Whether a task is finished or still to be scheduled."""

    DONE = 'done'
    ACTIVE = 'active'


class SyncAction(str, Enum):
    """Outcome of handling a single task during a run."""

    CREATED = 'created'
    UPDATED = 'updated'
    DELETED = 'deleted'
    ALREADY_GONE = 'already_gone'  # event was deleted in Google Calendar before
    ORPHANED = 'orphaned'  # stored event id pointed to a missing event
    SKIPPED = 'skipped'
    FAILED = 'failed'


class SyncTarget(BaseModel):
    """Pairing of a Notion database with a Google Calendar name."""

    model_config = ConfigDict(frozen=True)

    database_id: str
    calendar_name: str


class DueDate(BaseModel):
    """Due date of a task as given by Notion."""

    model_config = ConfigDict(frozen=True)

    start: str
    end: str | None = None
    time_zone: str | None = None

    @property
    def is_all_day(self) -> bool:
        """A start without time of the day makes an all-day event."""
        return 'T' not in self.start


class TaskRecord(BaseModel):
    """A task of a Notion database decoded from the raw page."""

    page_id: str
    title: str = ''
    due_date: DueDate | None = None
    status: str | None = None
    event_id: str | None = None
    last_edited_time: datetime | None = None

    @property
    def display_title(self) -> str:
        return self.title or DEFAULT_TITLE


class Calendar(BaseModel):
    """A calendar of the Google Calendar account."""

    model_config = ConfigDict(extra='ignore', populate_by_name=True)

    id: str
    summary: str = ''
    time_zone: str | None = Field(default=None, alias='timeZone')


class EventTime(BaseModel):
    """Start or end of a Google Calendar event, either a date or a date time."""

    model_config = ConfigDict(populate_by_name=True)

    date: str | None = None
    date_time: str | None = Field(default=None, alias='dateTime')
    time_zone: str | None = Field(default=None, alias='timeZone')


class EventBody(BaseModel):
    """Request body for inserting or updating a Google Calendar event."""

    summary: str
    description: str
    start: EventTime
    end: EventTime

    @classmethod
    def build(cls, *, summary: str, description: str, due_date: DueDate, time_zone: str) -> Self:
        """Build the event body from the due date of a task.

        All-day events only carry dates, timed events carry the date time and the given time zone.
        A missing end defaults to the start.
        """
        end = due_date.end or due_date.start
        if due_date.is_all_day:
            start_time, end_time = EventTime(date=due_date.start), EventTime(date=end)
        else:
            start_time = EventTime(date_time=due_date.start, time_zone=time_zone)
            end_time = EventTime(date_time=end, time_zone=time_zone)
        return cls(summary=summary, description=description, start=start_time, end=end_time)

    def serialize_for_api(self) -> dict[str, Any]:
        """Serialize the object for sending it to the Google Calendar API."""
        return self.model_dump(by_alias=True, exclude_none=True)


class TargetReport(BaseModel):
    """Summary of the run for a single target."""

    target: SyncTarget
    calendar_id: str | None = None
    n_records: int = 0
    actions: dict[SyncAction, int] = Field(default_factory=dict)
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def add(self, action: SyncAction) -> None:
        """Count the outcome of a single task."""
        self.actions[action] = self.actions.get(action, 0) + 1


class SyncReport(BaseModel):
    """Summary of a complete run."""

    since: datetime | None = None
    targets: list[TargetReport] = Field(default_factory=list)
    critical_error: str | None = None

    @property
    def failed(self) -> bool:
        """Did the run end with a critical error?"""
        return self.critical_error is not None

    def count(self, action: SyncAction) -> int:
        """Number of tasks over all targets that ended with the given action."""
        return sum(report.actions.get(action, 0) for report in self.targets)
