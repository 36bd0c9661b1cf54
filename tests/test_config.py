import logging
import os
from pathlib import Path
from unittest.mock import patch

from pytest import LogCaptureFixture, MonkeyPatch

from notion_gcal_sync.config import (
    ENV_NOTION_TOKEN,
    activate_debug_mode,
    get_cfg,
    get_cfg_file,
    get_or_create_cfg,
    resolve_env_value,
    resolve_values,
)
from notion_gcal_sync.models import SyncTarget
from notion_gcal_sync.sync import DEFAULT_REQUEST_INTERVAL, DEFAULT_TIME_ZONE


def test_get_cfg_file(custom_config: Path) -> None:
    assert get_cfg_file() == custom_config


def test_get_or_create_cfg(custom_config: Path) -> None:
    with patch.dict(os.environ, {ENV_NOTION_TOKEN: 'my-token'}):
        cfg = get_or_create_cfg()

    assert cfg.notion_gcal_sync.token == 'my-token'
    assert cfg.notion_gcal_sync.cfg_path == custom_config
    assert cfg.notion_gcal_sync.debug is False
    assert cfg.notion_gcal_sync.time_zone == DEFAULT_TIME_ZONE
    assert cfg.notion_gcal_sync.delta_minutes == 30
    assert cfg.notion_gcal_sync.request_interval == DEFAULT_REQUEST_INTERVAL
    assert cfg.columns.event_id == 'GCal_ID'
    assert cfg.targets == [
        SyncTarget(database_id='db-homework', calendar_name='Homework'),
        SyncTarget(database_id='db-assessments', calendar_name='Assessments'),
    ]
    assert cfg.google is not None
    assert cfg.google.has_refresh_token
    assert isinstance(cfg.google.client_secret_json, Path)
    assert cfg.google.client_secret_json == custom_config.parent / 'client_secret.json'
    assert isinstance(cfg.google.token_json, Path)


def test_target_without_database_id_is_dropped(custom_config: Path, caplog: LogCaptureFixture) -> None:
    env = dict(os.environ)
    del env['DATABASE_ID2']
    with patch.dict(os.environ, env, clear=True), caplog.at_level(logging.WARNING):
        cfg = get_cfg()

    assert [target.calendar_name for target in cfg.targets] == ['Homework']
    assert 'Assessments' in caplog.text


def test_missing_refresh_token(custom_config: Path) -> None:
    env = dict(os.environ)
    del env['GOOGLE_REFRESH_TOKEN']
    with patch.dict(os.environ, env, clear=True):
        cfg = get_cfg()

    assert cfg.google is not None
    assert not cfg.google.has_refresh_token


def test_resolve_env_value() -> None:
    assert resolve_env_value('${env:NON_EXISTENT_ENV_VAR}') is None
    assert resolve_env_value('${env:NON_EXISTENT_ENV_VAR|default}') == 'default'
    assert resolve_env_value('${env:NON_EXISTENT_ENV_VAR|}') == ''

    assert resolve_env_value('this/is/a/path') == 'this/is/a/path'

    with patch.dict(os.environ, {'VAR': 'value'}):
        assert resolve_env_value('${env:VAR}') == 'value'
        assert resolve_env_value('${env:VAR|default}') == 'value'


def test_resolve_values_in_arrays_of_tables() -> None:
    data = {
        'section': {'key': '${env:VAR}', 'number': 3},
        'targets': [{'database_id': '${env:VAR}', 'calendar_name': 'Homework'}],
    }
    with patch.dict(os.environ, {'VAR': 'value'}):
        resolve_values(data)

    assert data == {
        'section': {'key': 'value', 'number': 3},
        'targets': [{'database_id': 'value', 'calendar_name': 'Homework'}],
    }


def test_debug_mode(caplog: LogCaptureFixture, monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setattr(logging, 'basicConfig', lambda **kwargs: None)
    test_logger = logging.getLogger('test_logger')
    monkeypatch.setattr(logging, 'getLogger', lambda *args: test_logger)
    activate_debug_mode()
    assert 'is running in debug mode.' in caplog.text
