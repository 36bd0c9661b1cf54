"""Notion as source of the tasks to sync."""

from notion_gcal_sync.notion.client import create_notion_client
from notion_gcal_sync.notion.store import NotionStore

__all__ = ['NotionStore', 'create_notion_client']
