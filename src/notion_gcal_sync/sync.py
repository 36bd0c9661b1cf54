"""One-way synchronization of Notion tasks into Google Calendar events.

Every task page keeps the id of its event in a text property. This id is the only state shared between
both services, so a run can be repeated at any time. Tasks marked as done have their events removed, all other
tasks with a due date are created or updated in the calendar of their database.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from datetime import datetime

import pendulum as pnd

from notion_gcal_sync.errors import (
    CriticalError,
    GoneError,
    NotFoundError,
    ServiceError,
    SyncError,
)
from notion_gcal_sync.models import (
    Calendar,
    Classification,
    EventBody,
    SyncAction,
    SyncReport,
    SyncTarget,
    TargetReport,
    TaskRecord,
)

_logger = logging.getLogger(__name__)

DEFAULT_TIME_ZONE = 'America/Guayaquil'
DEFAULT_REQUEST_INTERVAL = 0.35
"""Pause in seconds after each task to stay below 3 requests/sec of the Notion API"""
DONE_VALUE = 'Done'


class SourceStore(ABC):
    """Service holding the tasks, e.g. Notion."""

    @abstractmethod
    def fetch_changed_records(self, database_id: str, since: datetime | None = None) -> list[TaskRecord]:
        """Get all tasks of a database, only those edited on or after `since` if given."""
        raise NotImplementedError()

    @abstractmethod
    def set_event_id(self, record: TaskRecord, event_id: str | None) -> None:
        """Store the id of the corresponding event in the task, `None` clears it."""
        raise NotImplementedError()


class DestinationCalendar(ABC):
    """Service receiving the events, e.g. Google Calendar."""

    @abstractmethod
    def all_calendars(self) -> list[Calendar]:
        """Get all calendars of the account."""
        raise NotImplementedError()

    @abstractmethod
    def create_calendar(self, name: str, time_zone: str) -> Calendar:
        """Create a new calendar."""
        raise NotImplementedError()

    @abstractmethod
    def insert_event(self, calendar_id: str, event: EventBody) -> str | None:
        """Create a new event and return its id."""
        raise NotImplementedError()

    @abstractmethod
    def update_event(self, calendar_id: str, event_id: str, event: EventBody) -> None:
        """Replace an existing event."""
        raise NotImplementedError()

    @abstractmethod
    def delete_event(self, calendar_id: str, event_id: str) -> None:
        """Delete an existing event."""
        raise NotImplementedError()


class Reconciler:
    """Mirrors the tasks of Notion databases into Google calendars."""

    def __init__(
        self,
        *,
        store: SourceStore,
        calendar: DestinationCalendar,
        targets: Sequence[SyncTarget],
        time_zone: str = DEFAULT_TIME_ZONE,
        delta_minutes: int | None = None,
        request_interval: float = DEFAULT_REQUEST_INTERVAL,
        done_value: str = DONE_VALUE,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.calendar = calendar
        self.targets = list(targets)
        self.time_zone = time_zone
        self.delta_minutes = delta_minutes
        self.request_interval = request_interval
        self.done_value = done_value
        self._sleep = sleep

    def resolve_calendar(self, target: SyncTarget) -> str:
        """Return the id of the calendar named like the target and create it if it doesn't exist yet."""
        for calendar in self.calendar.all_calendars():
            if calendar.summary == target.calendar_name:
                _logger.info(f'Found existing calendar `{target.calendar_name}`.')
                return calendar.id

        _logger.info(f'Creating new calendar `{target.calendar_name}`.')
        return self.calendar.create_calendar(target.calendar_name, self.time_zone).id

    def fetch_changed_records(self, database_id: str, since: datetime | None = None) -> list[TaskRecord]:
        """Get the tasks of the database that changed since the given time."""
        records = self.store.fetch_changed_records(database_id, since)
        _logger.info(f'Found {len(records)} recently updated task(s) in database {database_id}.')
        return records

    def classify(self, record: TaskRecord) -> Classification:
        """A task is done only if its status equals the done value."""
        return Classification.DONE if record.status == self.done_value else Classification.ACTIVE

    def upsert(self, calendar_id: str, target: SyncTarget, record: TaskRecord) -> SyncAction:
        """Create or update the event of an active task."""
        if record.due_date is None:
            _logger.debug(f'Task `{record.display_title}` has no due date. Skipping.')
            return SyncAction.SKIPPED

        event = EventBody.build(
            summary=record.display_title,
            description=f'Synced from Notion database: {target.calendar_name}',
            due_date=record.due_date,
            time_zone=self.time_zone,
        )

        if record.event_id is None:
            try:
                event_id = self.calendar.insert_event(calendar_id, event)
            except ServiceError as err:
                _logger.error(f'Error in `{record.display_title}`: {err}')
                return SyncAction.FAILED

            if event_id is None:
                _logger.warning(f'No event id returned for `{record.display_title}`, cannot store it.')
            else:
                self.store.set_event_id(record, event_id)
            _logger.info(f'Created: {record.display_title}')
            return SyncAction.CREATED

        try:
            self.calendar.update_event(calendar_id, record.event_id, event)
        except NotFoundError:
            _logger.warning(f'Event of `{record.display_title}` not found in calendar. Clearing id for recreation.')
            self.store.set_event_id(record, None)
            return SyncAction.ORPHANED
        except ServiceError as err:
            _logger.error(f'Error in `{record.display_title}`: {err}')
            return SyncAction.FAILED

        _logger.info(f'Updated: {record.display_title}')
        return SyncAction.UPDATED

    def remove(self, calendar_id: str, record: TaskRecord) -> SyncAction:
        """Delete the event of a finished task."""
        if record.event_id is None:
            return SyncAction.SKIPPED

        _logger.info(f'Deleting from calendar: {record.display_title}')
        try:
            self.calendar.delete_event(calendar_id, record.event_id)
        except (NotFoundError, GoneError):
            _logger.warning(f'`{record.display_title}` was already deleted from calendar. Clearing id.')
            self.store.set_event_id(record, None)
            return SyncAction.ALREADY_GONE
        except ServiceError as err:
            _logger.error(f'Deletion error for `{record.display_title}`: {err}')
            return SyncAction.FAILED

        self.store.set_event_id(record, None)
        _logger.info(f'Successfully removed: {record.display_title}')
        return SyncAction.DELETED

    def sync_record(self, calendar_id: str, target: SyncTarget, record: TaskRecord) -> SyncAction:
        """Dispatch a single task depending on its classification."""
        try:
            if self.classify(record) is Classification.DONE:
                return self.remove(calendar_id, record)
            else:
                return self.upsert(calendar_id, target, record)
        except SyncError as err:
            _logger.error(f'Failed to sync `{record.display_title}`: {err}')
            return SyncAction.FAILED

    def sync_target(self, target: SyncTarget, since: datetime | None = None) -> TargetReport:
        """Sync all changed tasks of a single target."""
        _logger.info(f'Syncing database {target.database_id} into calendar `{target.calendar_name}`.')
        report = TargetReport(target=target)
        try:
            report.calendar_id = self.resolve_calendar(target)
            records = self.fetch_changed_records(target.database_id, since)
        except SyncError as err:
            _logger.error(f'Skipping calendar `{target.calendar_name}`: {err}')
            report.error = str(err)
            return report

        report.n_records = len(records)
        for record in records:
            report.add(self.sync_record(report.calendar_id, target, record))
            # Notion API rate limit protection (3 requests/sec max)
            self._sleep(self.request_interval)

        return report

    def delta_threshold(self) -> datetime | None:
        """Return the time from which on edited tasks are synced, `None` to sync all tasks."""
        if not self.delta_minutes:
            return None
        return pnd.now('UTC').subtract(minutes=self.delta_minutes)

    def run(self) -> SyncReport:
        """Sync all targets in the configured order.

        Unexpected errors end the run. They are logged as critical and noted in the report but not raised.
        """
        report = SyncReport()
        try:
            report.since = self.delta_threshold()
            if report.since is None:
                _logger.info('Starting synchronization of all tasks.')
            else:
                _logger.info(f'Starting synchronization of tasks edited after {report.since.isoformat()}.')

            for target in self.targets:
                report.targets.append(self.sync_target(target, report.since))
        except Exception as exc:
            err = critical_error(exc)
            _logger.critical(f'Sync failed: {err}', exc_info=exc)
            if err.details is not None:
                _logger.critical(f'Details: {err.details}')
            report.critical_error = str(err)
            return report

        _logger.info('Synchronization complete.')
        return report


def critical_error(exc: Exception) -> CriticalError:
    """Wrap an unexpected exception together with the structured payload of its response if any."""
    details = getattr(exc, 'details', None)
    if details is None:
        details = getattr(exc, 'body', None)  # responses of the Notion SDK
    if details is None and (content := getattr(exc, 'content', None)) is not None:
        details = content.decode('utf-8') if isinstance(content, bytes) else content
    err = CriticalError(str(exc) or type(exc).__name__, details=details)
    err.__cause__ = exc
    return err
