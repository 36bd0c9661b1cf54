"""Client for the Google Calendar API.

Follow this quickstart guide to enable the API and create the necessary credentials:
https://developers.google.com/calendar/api/quickstart/python

Official Python API documentation: https://googleapis.github.io/google-api-python-client/docs/dyn/calendar_v3.html
Official REST documentation: https://developers.google.com/calendar/api/v3/reference
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from types import TracebackType
from typing import Any

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import Resource, build
from googleapiclient.errors import HttpError

from notion_gcal_sync.config import Config, get_or_create_cfg
from notion_gcal_sync.errors import ConfigurationError, service_error_for
from notion_gcal_sync.models import Calendar, EventBody
from notion_gcal_sync.sync import DestinationCalendar

TOKEN_URI = 'https://oauth2.googleapis.com/token'
MAX_RESULTS_PER_PAGE = 250
"""Maximum number of results per page when fetching all calendars."""

_logger = logging.getLogger(__name__)


class Scope(str, Enum):
    CALENDAR_RO = 'https://www.googleapis.com/auth/calendar.readonly'
    """Allows read-only access to Google Calendar"""
    CALENDAR_RW = 'https://www.googleapis.com/auth/calendar'
    """Allows read/write access to Google Calendar"""


def error_details(err: HttpError) -> Any:
    """Return the decoded error payload of the response if possible."""
    content = err.content.decode('utf-8') if isinstance(err.content, bytes) else err.content
    try:
        return json.loads(content)
    except (TypeError, ValueError):
        return content


@contextmanager
def translate_http_errors(action: str) -> Iterator[None]:
    """Re-raise errors of the Google API as the matching `ServiceError`."""
    try:
        yield
    except HttpError as err:
        msg = f'Google Calendar API failed to {action}: {err.reason}'
        raise service_error_for(err.status_code, msg, error_details(err)) from err


class GCalClient(DestinationCalendar):
    """Google API to easily handle calendars and their events."""

    read_only: bool
    _scopes: list[str]
    _config: Config
    resource: Resource

    def __init__(self, config: Config | None = None, *, read_only: bool = False, resource: Resource | None = None):
        self.read_only = read_only
        self._scopes = [Scope.CALENDAR_RO.value] if read_only else [Scope.CALENDAR_RW.value]
        if config is None:
            config = get_or_create_cfg()
        self._config = config
        self.resource = self._build_resource() if resource is None else resource

    def _get_credentials(self) -> Credentials:
        if (gcfg := self._config.google) is None:
            msg = 'Configuration has no `google` section!'
            raise ConfigurationError(msg)

        if gcfg.has_refresh_token:
            _logger.info('Using refresh token of the configuration for Google Calendar.')
            return Credentials(
                token=None,
                refresh_token=gcfg.refresh_token,
                client_id=gcfg.client_id,
                client_secret=gcfg.client_secret,
                token_uri=TOKEN_URI,
                scopes=self._scopes,
            )

        if (secret_path := gcfg.client_secret_json) is None:
            msg = 'You have to set google.refresh_token or google.client_secret_json in your config.toml!'
            raise ConfigurationError(msg)
        if (token_path := gcfg.token_json) is None:
            msg = 'You have to set google.token_json in your config.toml!'
            raise ConfigurationError(msg)
        if not secret_path.exists():
            msg = f'File {secret_path} does not exist!'
            raise ConfigurationError(msg)

        creds = Credentials.from_authorized_user_file(token_path, self._scopes) if token_path.exists() else None
        if not creds or not creds.valid:
            if creds and creds.expired and creds.refresh_token:
                try:
                    creds.refresh(Request())
                except RefreshError as e:
                    msg = f'Error refreshing token. Please delete {token_path} and try again!'
                    raise ConfigurationError(msg) from e
            else:
                flow = InstalledAppFlow.from_client_secrets_file(secret_path, self._scopes)
                creds = flow.run_local_server(port=0)
            # Save the credentials for the next run
            with open(token_path, 'w', encoding='utf8') as token:
                token.write(creds.to_json())
        return creds

    def _build_resource(self) -> Resource:
        return build('calendar', 'v3', credentials=self._get_credentials())

    def all_calendars(self) -> list[Calendar]:
        """Returns a list of all calendars of the account."""
        page_token = None
        calendars = []

        while True:
            with translate_http_errors('list calendars'):
                results = (
                    self.resource.calendarList().list(maxResults=MAX_RESULTS_PER_PAGE, pageToken=page_token).execute()
                )
            items = results.get('items', [])
            calendars.extend([Calendar.model_validate(item) for item in items])

            page_token = results.get('nextPageToken')
            if not page_token:
                break

        return calendars

    def create_calendar(self, name: str, time_zone: str) -> Calendar:
        """Creates a new calendar."""
        with translate_http_errors(f'create calendar `{name}`'):
            resp = self.resource.calendars().insert(body={'summary': name, 'timeZone': time_zone}).execute()
        return Calendar.model_validate(resp)

    def insert_event(self, calendar_id: str, event: EventBody) -> str | None:
        """Creates a new event and returns its id."""
        with translate_http_errors(f'insert event `{event.summary}`'):
            resp = self.resource.events().insert(calendarId=calendar_id, body=event.serialize_for_api()).execute()
        return resp.get('id')

    def update_event(self, calendar_id: str, event_id: str, event: EventBody) -> None:
        """Replaces the event with the given id."""
        with translate_http_errors(f'update event {event_id}'):
            self.resource.events().update(
                calendarId=calendar_id, eventId=event_id, body=event.serialize_for_api()
            ).execute()

    def delete_event(self, calendar_id: str, event_id: str) -> None:
        """Deletes the event with the given id."""
        with translate_http_errors(f'delete event {event_id}'):
            self.resource.events().delete(calendarId=calendar_id, eventId=event_id).execute()

    def close(self) -> None:
        """Closes the client."""
        self.resource.close()

    def __enter__(self) -> GCalClient:
        return self

    def __exit__(
        self, exc_type: type[BaseException] | None, exc_value: BaseException | None, traceback: TracebackType | None
    ) -> None:
        self.close()
