"""Google Calendar as destination of the synced tasks."""

from notion_gcal_sync.google.client import GCalClient

__all__ = ['GCalClient']
