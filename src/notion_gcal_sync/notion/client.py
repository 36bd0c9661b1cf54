"""Creation of the low-level Notion client of [notion-sdk-py].

[notion-sdk-py]: https://github.com/ramnes/notion-sdk-py/
"""

from __future__ import annotations

import logging
import platform
from importlib.metadata import version
from typing import TYPE_CHECKING, Any

import httpx
import notion_client

from notion_gcal_sync import __version__
from notion_gcal_sync.config import get_cfg_file
from notion_gcal_sync.errors import ConfigurationError

if TYPE_CHECKING:
    from notion_gcal_sync.config import Config


_logger = logging.getLogger(__name__)


def _get_default_user_agent() -> str:
    """Return the default user agent string for the Notion client."""
    python_version = platform.python_version()
    os_name = platform.system()
    architecture = platform.machine()
    notion_sdk_version = version('notion-client')
    return ' '.join((
        f'notion-gcal-sync/{__version__}',
        f'python/{python_version}',
        f'{os_name}/{architecture}',
        f'notion-sdk-py/{notion_sdk_version}',
        f'httpx/{httpx.__version__}',
    ))


def create_notion_client(cfg: Config, **kwargs: Any) -> notion_client.Client:
    """Create a Notion client with the token of the configuration."""
    if (auth := cfg.notion_gcal_sync.token) is None:
        msg = f'No Notion token found! Check {get_cfg_file()}.'
        raise ConfigurationError(msg)

    # Set same sane defaults as notion_client defines its own logger
    kwargs.setdefault('logger', logging.getLogger('notion_client'))
    kwargs.setdefault('log_level', logging.NOTSET)

    def log_request(request: httpx.Request) -> None:
        msg = f'Request: {request.method} {request.url}'
        if request.content:
            msg += f'\n{request.content.decode("utf-8")}'
        _logger.debug(msg)

    def log_response(response: httpx.Response) -> None:
        msg = f'Response: {response.status_code} {response.url}'
        response.read()  # Ensure that the response content is fully loaded.
        if response.content:
            msg += f'\n{response.content.decode("utf-8")}'
        _logger.debug(msg)

    user_agent = kwargs.pop('user_agent', _get_default_user_agent())
    httpx_client = httpx.Client(event_hooks={'request': [log_request], 'response': [log_response]})
    client = notion_client.Client(auth=auth, client=httpx_client, **kwargs)
    # we need to set the user agent manually, because notion_client overwrites it during initialization
    httpx_client.headers['User-Agent'] = user_agent
    return client
