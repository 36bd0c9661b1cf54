"""Fixtures for Notion GCal Sync unit tests.

Both remote services are replaced by in-memory fakes implementing the abstract interfaces of
`notion_gcal_sync.sync`. The fakes record every call so that tests can assert on the exact remote mutations.

Common pitfalls:
* never use dynamic values, e.g. datetime.now(), in assertions. Patch `pendulum.now` or use `delta_minutes=None`.
* `custom_config` patches the environment, so use it before anything reads the configuration.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from notion_gcal_sync.config import ENV_NOTION_GCAL_SYNC_CFG, get_or_create_cfg
from notion_gcal_sync.errors import service_error_for
from notion_gcal_sync.models import Calendar, EventBody, SyncTarget, TaskRecord
from notion_gcal_sync.sync import DestinationCalendar, Reconciler, SourceStore

HOMEWORK = SyncTarget(database_id='db-homework', calendar_name='Homework')
ASSESSMENTS = SyncTarget(database_id='db-assessments', calendar_name='Assessments')


class FakeStore(SourceStore):
    """In-memory Notion holding the tasks of each database."""

    def __init__(self) -> None:
        self.records: dict[str, list[TaskRecord]] = {}
        self.failing: dict[str, Exception] = {}
        self.fetch_calls: list[tuple[str, datetime | None]] = []
        self.patches: list[tuple[str, str | None]] = []

    def add(self, database_id: str, record: TaskRecord) -> TaskRecord:
        self.records.setdefault(database_id, []).append(record)
        return record

    def fetch_changed_records(self, database_id: str, since: datetime | None = None) -> list[TaskRecord]:
        self.fetch_calls.append((database_id, since))
        if (exc := self.failing.get(database_id)) is not None:
            raise exc
        return list(self.records.get(database_id, []))

    def set_event_id(self, record: TaskRecord, event_id: str | None) -> None:
        self.patches.append((record.page_id, event_id))
        record.event_id = event_id


class FakeCalendar(DestinationCalendar):
    """In-memory Google Calendar account."""

    def __init__(self) -> None:
        self.calendars: list[Calendar] = []
        self.events: dict[tuple[str, str], EventBody] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.errors: dict[str, int] = {}  # method name -> HTTP status to fail with
        self._next_id = 0

    def _maybe_fail(self, method: str) -> None:
        if (status := self.errors.get(method)) is not None:
            raise service_error_for(status, f'{method} failed with {status}', {'error': {'code': status}})

    def _new_id(self, prefix: str) -> str:
        self._next_id += 1
        return f'{prefix}{self._next_id}'

    def all_calendars(self) -> list[Calendar]:
        self.calls.append(('all_calendars',))
        self._maybe_fail('all_calendars')
        return list(self.calendars)

    def create_calendar(self, name: str, time_zone: str) -> Calendar:
        self.calls.append(('create_calendar', name, time_zone))
        self._maybe_fail('create_calendar')
        calendar = Calendar(id=self._new_id('cal'), summary=name, time_zone=time_zone)
        self.calendars.append(calendar)
        return calendar

    def insert_event(self, calendar_id: str, event: EventBody) -> str | None:
        self.calls.append(('insert_event', calendar_id, event))
        self._maybe_fail('insert_event')
        event_id = self._new_id('evt')
        self.events[calendar_id, event_id] = event
        return event_id

    def update_event(self, calendar_id: str, event_id: str, event: EventBody) -> None:
        self.calls.append(('update_event', calendar_id, event_id, event))
        self._maybe_fail('update_event')
        self.events[calendar_id, event_id] = event

    def delete_event(self, calendar_id: str, event_id: str) -> None:
        self.calls.append(('delete_event', calendar_id, event_id))
        self._maybe_fail('delete_event')
        self.events.pop((calendar_id, event_id), None)

    def mutations(self) -> list[tuple[Any, ...]]:
        """All calls that change events."""
        return [call for call in self.calls if call[0] in {'insert_event', 'update_event', 'delete_event'}]


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def calendar() -> FakeCalendar:
    return FakeCalendar()


@pytest.fixture
def sleeps() -> list[float]:
    """Collects the pauses of the reconciler instead of sleeping."""
    return []


@pytest.fixture
def reconciler(store: FakeStore, calendar: FakeCalendar, sleeps: list[float]) -> Reconciler:
    return Reconciler(
        store=store,
        calendar=calendar,
        targets=[HOMEWORK, ASSESSMENTS],
        time_zone='America/Guayaquil',
        delta_minutes=None,
        sleep=sleeps.append,
    )


def make_page(
    page_id: str = 'page-1',
    *,
    task: str | None = 'Essay',
    due: dict[str, Any] | None = None,
    event_id: str | None = None,
    status: tuple[str, str] | None = None,
    omit: tuple[str, ...] = (),
) -> dict[str, Any]:
    """Build a raw page as returned by the Notion API.

    `status` is a tuple of the property type, i.e. `status` or `select`, and the option name.
    """
    props: dict[str, Any] = {
        'Task': {
            'id': 'title',
            'type': 'title',
            'title': [] if not task else [{'type': 'text', 'plain_text': task, 'text': {'content': task}}],
        },
        'Due Date': {'id': 'due', 'type': 'date', 'date': due},
        'GCal_ID': {
            'id': 'gcal',
            'type': 'rich_text',
            'rich_text': [] if event_id is None else [{'type': 'text', 'plain_text': event_id}],
        },
        'Last Edited Time': {'id': 'edit', 'type': 'last_edited_time', 'last_edited_time': '2024-04-30T12:00:00.000Z'},
    }
    if status is not None:
        prop_type, name = status
        props['Status'] = {'id': 'status', 'type': prop_type, prop_type: {'id': 'opt', 'name': name, 'color': 'green'}}
    for name in omit:
        props.pop(name, None)
    return {
        'object': 'page',
        'id': page_id,
        'created_time': '2024-04-01T12:00:00.000Z',
        'last_edited_time': '2024-04-30T12:00:00.000Z',
        'archived': False,
        'properties': props,
    }


@pytest.fixture
def custom_config() -> Iterator[Path]:
    """Return a freshly created default configuration file for the tests."""
    env = {
        ENV_NOTION_GCAL_SYNC_CFG: '',
        'NOTION_TOKEN': 'secret_notion',
        'GOOGLE_CLIENT_ID': 'client.apps.googleusercontent.com',
        'GOOGLE_CLIENT_SECRET': 'secret...',
        'GOOGLE_REFRESH_TOKEN': 'refresh...',
        'DATABASE_ID1': 'db-homework',
        'DATABASE_ID2': 'db-assessments',
    }
    with tempfile.TemporaryDirectory() as tmp_dir_path:
        cfg_path = Path(tmp_dir_path) / 'config.toml'
        env[ENV_NOTION_GCAL_SYNC_CFG] = str(cfg_path)
        with patch.dict(os.environ, env):
            get_or_create_cfg()
            yield cfg_path
