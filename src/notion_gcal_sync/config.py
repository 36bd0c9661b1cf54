"""Handling the configuration of Notion GCal Sync"""

import logging
import os
import re
import sys
from pathlib import Path
from typing import Any

import tomli
from pydantic import BaseModel, Field, FilePath, ValidationInfo, field_validator

from notion_gcal_sync.models import SyncTarget
from notion_gcal_sync.sync import DEFAULT_REQUEST_INTERVAL, DEFAULT_TIME_ZONE

_logger = logging.getLogger(__name__)

ENV_NOTION_GCAL_SYNC_CFG: str = 'NOTION_GCAL_SYNC_CONFIG'
"""Name of the environment variable to look up the path for the config"""
DEFAULT_NOTION_GCAL_SYNC_CFG_PATH: str = '.notion-gcal-sync/config.toml'
"""Default path within $HOME to the configuration file"""
ENV_NOTION_TOKEN = 'NOTION_TOKEN'  # same as in `notion-sdk-py` package
"""Name of the environment variable to look up the Notion token"""
ENV_NOTION_GCAL_SYNC_DEBUG = 'NOTION_GCAL_SYNC_DEBUG'

DEFAULT_DELTA_MINUTES = 30
"""Only tasks edited within this many minutes before a run are synced, 0 syncs all tasks"""

DEFAULT_CFG = f"""\
# Configuration for Notion GCal Sync
#
# * Non-absolute paths are always relative to the directory of this file.
# * You can use environment variables in the format ${{env:VAR_NAME}} or ${{env:VAR_NAME|DEFAULT_VALUE}}.

[notion_gcal_sync]
token = "${{env:{ENV_NOTION_TOKEN}}}"
debug = "${{env:{ENV_NOTION_GCAL_SYNC_DEBUG}|false}}"
time_zone = "{DEFAULT_TIME_ZONE}"
delta_minutes = {DEFAULT_DELTA_MINUTES}
request_interval = {DEFAULT_REQUEST_INTERVAL}

[columns]
task = "Task"
due_date = "Due Date"
event_id = "GCal_ID"
status = "Status"
done_value = "Done"

[google]
client_id = "${{env:GOOGLE_CLIENT_ID}}"
client_secret = "${{env:GOOGLE_CLIENT_SECRET}}"
refresh_token = "${{env:GOOGLE_REFRESH_TOKEN}}"
client_secret_json = "client_secret.json"
token_json = "token.json"

[[targets]]
database_id = "${{env:DATABASE_ID1}}"
calendar_name = "Homework"

[[targets]]
database_id = "${{env:DATABASE_ID2}}"
calendar_name = "Assessments"
"""


class SyncCfg(BaseModel):
    """Configuration related to the sync itself."""

    token: str | None = None
    debug: bool = False
    time_zone: str = DEFAULT_TIME_ZONE
    delta_minutes: int | None = DEFAULT_DELTA_MINUTES
    request_interval: float = Field(default=DEFAULT_REQUEST_INTERVAL, ge=0)
    cfg_path: FilePath  # will be set automatically


class ColumnsCfg(BaseModel):
    """Names of the Notion properties holding the task data."""

    task: str = 'Task'
    due_date: str = 'Due Date'
    event_id: str = 'GCal_ID'
    status: str = 'Status'
    done_value: str = 'Done'


class GoogleCfg(BaseModel):
    """Configuration related to the Google API."""

    client_id: str | None = None
    client_secret: str | None = None
    refresh_token: str | None = None
    client_secret_json: Path | None = None
    token_json: Path | None = None

    @property
    def has_refresh_token(self) -> bool:
        """Are all values given to build credentials from a refresh token?"""
        return all((self.client_id, self.client_secret, self.refresh_token))


class Config(BaseModel):
    """Main configuration object."""

    notion_gcal_sync: SyncCfg
    columns: ColumnsCfg = Field(default_factory=ColumnsCfg)
    google: GoogleCfg | None = None
    targets: list[SyncTarget] = Field(default_factory=list)

    @field_validator('targets', mode='before')
    @classmethod
    def drop_unset_targets(cls, value: list[dict[str, Any]]) -> list[dict[str, Any]]:
        targets = []
        for target in value:
            if isinstance(target, dict) and not target.get('database_id'):
                _logger.warning(f'No database id set for calendar `{target.get("calendar_name")}`. Ignoring target.')
                continue
            targets.append(target)
        return targets

    @field_validator('google')
    @classmethod
    def google_convert_path(cls, value: GoogleCfg | None, info: ValidationInfo) -> GoogleCfg | None:
        def make_rel_path_abs(entry: Path | None) -> Path | None:
            if entry is not None and not entry.is_absolute():
                cfg_path: Path = info.data['notion_gcal_sync'].cfg_path
                entry = cfg_path.parent / entry
            return entry

        if value is not None:
            value.client_secret_json = make_rel_path_abs(value.client_secret_json)
            value.token_json = make_rel_path_abs(value.token_json)

        return value


def get_cfg_file() -> Path:
    """Determines the path of the config file."""
    path_str = os.environ.get(ENV_NOTION_GCAL_SYNC_CFG, None)
    path = Path.home() / Path(DEFAULT_NOTION_GCAL_SYNC_CFG_PATH) if path_str is None else Path(path_str)
    return path


def resolve_env_value(value: str) -> str | None:
    """Resolves environment variable values in the format ${env:VAR_NAME|DEFAULT_VALUE}."""
    match = re.match(r'\${env:(\w+)(?:\|(.*))?}$', value)
    if match:
        var_name = match.group(1)
        default_value = match.group(2)
        return os.environ.get(var_name, default_value)
    return value


def resolve_values(data: Any) -> Any:
    """Resolve all environment variable values in nested tables and arrays of tables."""
    if isinstance(data, dict):
        for key, value in data.items():
            data[key] = resolve_values(value)
    elif isinstance(data, list):
        data[:] = [resolve_values(value) for value in data]
    elif isinstance(data, str):
        return resolve_env_value(data)
    return data


def get_cfg() -> Config:
    """Returns the configuration as an object."""
    cfg_path = get_cfg_file()
    _logger.info(f'Loading configuration from path `{cfg_path}`.')
    with open(cfg_path, 'rb') as fh:
        cfg_dict = tomli.load(fh)

    resolve_values(cfg_dict)

    if 'notion_gcal_sync' not in cfg_dict:
        msg = f'The configuration file {cfg_path} does not contain a section [notion_gcal_sync].'
        raise RuntimeError(msg)

    # add config path to later resolve relative paths of config values
    cfg_dict['notion_gcal_sync']['cfg_path'] = cfg_path
    return Config.model_validate(cfg_dict)


def get_or_create_cfg() -> Config:
    """Returns the configuration as an object or creates it if it doesn't exist yet."""
    cfg_path = get_cfg_file()
    if not cfg_path.exists():
        cfg_path.parent.mkdir(parents=True, exist_ok=True)
        cfg_path.write_text(DEFAULT_CFG)
    return get_cfg()


def activate_debug_mode() -> None:
    """Activates debug mode by setting up logging and notifying the user."""

    from notion_gcal_sync import __version__  # noqa: PLC0415

    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=logging.DEBUG, stream=sys.stdout)

    logger = logging.getLogger(__package__)
    logger.setLevel(logging.DEBUG)

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(f'Notion GCal Sync {__version__} is running in debug mode.')
