"""Notion GCal Sync mirrors task databases of Notion into Google Calendar.

Notion-API: https://developers.notion.com/reference/intro
Google Calendar API: https://developers.google.com/calendar/api/v3/reference
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version('notion-gcal-sync')
except PackageNotFoundError:  # pragma: no cover
    __version__ = 'unknown'
finally:
    del version, PackageNotFoundError

from notion_gcal_sync.models import Classification, SyncAction, SyncReport, SyncTarget, TaskRecord
from notion_gcal_sync.sync import DestinationCalendar, Reconciler, SourceStore

__all__ = [
    'Classification',
    'DestinationCalendar',
    'Reconciler',
    'SourceStore',
    'SyncAction',
    'SyncReport',
    'SyncTarget',
    'TaskRecord',
    '__version__',
]
