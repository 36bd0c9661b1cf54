"""Notion databases as source of the tasks to sync."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from types import TracebackType
from typing import Any

import notion_client
from notion_client.errors import HTTPResponseError, RequestTimeoutError
from pydantic import ValidationError

from notion_gcal_sync.config import ColumnsCfg
from notion_gcal_sync.errors import ConfigurationError, SchemaError, SourceStoreError
from notion_gcal_sync.models import DueDate, TaskRecord
from notion_gcal_sync.notion.iterator import EndpointIterator
from notion_gcal_sync.notion.props import Database, Date, Page, RichText, Select, Status, Title, rich_text_value
from notion_gcal_sync.sync import SourceStore

_logger = logging.getLogger(__name__)


@contextmanager
def translate_api_errors(action: str) -> Iterator[None]:
    """Re-raise failed or timed out requests to the Notion API as `SourceStoreError`."""
    try:
        yield
    except HTTPResponseError as err:
        msg = f'Notion API failed to {action}: {err}'
        raise SourceStoreError(msg, status=err.status, details=err.body) from err
    except RequestTimeoutError as err:
        msg = f'Notion API timed out trying to {action}: {err}'
        raise SourceStoreError(msg) from err


class NotionStore(SourceStore):
    """Reads tasks from Notion databases and stores the ids of their events."""

    client: notion_client.Client
    columns: ColumnsCfg

    def __init__(self, client: notion_client.Client, columns: ColumnsCfg | None = None) -> None:
        self.client = client
        self.columns = ColumnsCfg() if columns is None else columns

    def data_source_id(self, database_id: str) -> str:
        """Return the id of the first data source of the database."""
        with translate_api_errors(f'retrieve database {database_id}'):
            resp = self.client.databases.retrieve(database_id=database_id)
        database = Database.model_validate(resp)
        if not database.data_sources:
            msg = f'Could not retrieve a data source for database {database_id}'
            raise ConfigurationError(msg)
        return database.data_sources[0].id

    def fetch_changed_records(self, database_id: str, since: datetime | None = None) -> list[TaskRecord]:
        """Return the tasks of the database, only those edited on or after `since` if given.

        Pages that cannot be decoded into a task are logged and skipped.
        """
        ds_id = self.data_source_id(database_id)
        query: dict[str, Any] = {'data_source_id': ds_id}
        if since is not None:
            query['filter'] = {'timestamp': 'last_edited_time', 'last_edited_time': {'on_or_after': since.isoformat()}}

        page_iter = EndpointIterator[dict[str, Any]](self.client.data_sources.query, model_validate=dict)
        records = []
        with translate_api_errors(f'query data source {ds_id}'):
            for raw_page in page_iter(**query):
                try:
                    records.append(self.decode_task(raw_page))
                except SchemaError as err:
                    _logger.error(f'Skipping page: {err}')
        return records

    def decode_task(self, raw_page: dict[str, Any]) -> TaskRecord:
        """Decode a raw page into a task, raising `SchemaError` if required properties are missing."""
        page_id = str(raw_page.get('id'))
        try:
            page = Page.model_validate(raw_page)
        except ValidationError as err:
            raise SchemaError(page_id, '<page>', f'is malformed: {err}') from err

        title_prop = self._get_prop(page, self.columns.task, Title)
        date_prop = self._get_prop(page, self.columns.due_date, Date)
        event_id_prop = self._get_prop(page, self.columns.event_id, RichText)

        status_prop = page.properties.get(self.columns.status)
        match status_prop:
            case Status(status=option) | Select(select=option) if option is not None:
                status = option.name
            case _:
                status = None

        due_date = None
        if (date_range := date_prop.date) is not None:
            due_date = DueDate(start=date_range.start, end=date_range.end, time_zone=date_range.time_zone)

        return TaskRecord(
            page_id=page.id,
            title=title_prop.value,
            due_date=due_date,
            status=status,
            event_id=event_id_prop.value or None,
            last_edited_time=page.last_edited_time,
        )

    @staticmethod
    def _get_prop(page: Page, name: str, prop_type: type[Any]) -> Any:
        if (prop := page.properties.get(name)) is None:
            raise SchemaError(page.id, name)
        if not isinstance(prop, prop_type):
            raise SchemaError(page.id, name, f'has type `{prop.type}` instead of `{prop_type.__name__}`')
        return prop

    def set_event_id(self, record: TaskRecord, event_id: str | None) -> None:
        """Store the id of the event in the page of the task, `None` clears it."""
        _logger.debug(f'Setting `{self.columns.event_id}` of page {record.page_id} to {event_id!r}.')
        with translate_api_errors(f'update page {record.page_id}'):
            self.client.pages.update(
                page_id=record.page_id, properties={self.columns.event_id: rich_text_value(event_id)}
            )
        record.event_id = event_id

    def close(self) -> None:
        """Close the underlying client."""
        _logger.info('Closing connection to Notion.')
        self.client.close()

    def __enter__(self) -> NotionStore:
        return self

    def __exit__(
        self, exc_type: type[BaseException] | None, exc_value: BaseException | None, traceback: TracebackType | None
    ) -> None:
        self.close()
