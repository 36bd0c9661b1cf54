import enum
import logging
import sys
from typing import Annotated

import tomli_w
import typer

from notion_gcal_sync import __version__
from notion_gcal_sync.config import Config, activate_debug_mode, get_cfg_file, get_or_create_cfg
from notion_gcal_sync.errors import ConfigurationError
from notion_gcal_sync.google import GCalClient
from notion_gcal_sync.models import SyncAction, SyncReport
from notion_gcal_sync.notion import NotionStore, create_notion_client
from notion_gcal_sync.sync import Reconciler

_logger = logging.getLogger(__name__)

SECRET_FIELDS = {'notion_gcal_sync': {'token'}, 'google': {'client_secret', 'refresh_token'}}
"""Configuration values never printed by the `config` command"""


class LogLevel(str, enum.Enum):
    CRITICAL = 'critical'
    ERROR = 'error'
    WARNING = 'warning'
    INFO = 'info'
    DEBUG = 'debug'


def setup_logging(log_level: LogLevel) -> None:
    """Setup basic logging"""
    log_format = '[%(asctime)s] %(levelname)s:%(name)s:%(message)s'
    numeric_level = getattr(logging, log_level.upper(), None)
    logging.basicConfig(level=numeric_level, stream=sys.stdout, format=log_format, datefmt='%Y-%m-%d %H:%M:%S')


app = typer.Typer(
    name=f'Notion GCal Sync {__version__}',
    help='Mirror your Notion tasks into Google Calendar.',
)


@app.callback()
def main(log_level: Annotated[LogLevel, typer.Option(help='Log level')] = LogLevel.INFO) -> None:
    """Shared options for all commands"""
    setup_logging(log_level)


def build_reconciler(cfg: Config, store: NotionStore, gcal: GCalClient) -> Reconciler:
    """Build the reconciler from the configuration and both clients."""
    sync_cfg = cfg.notion_gcal_sync
    return Reconciler(
        store=store,
        calendar=gcal,
        targets=cfg.targets,
        time_zone=sync_cfg.time_zone,
        delta_minutes=sync_cfg.delta_minutes,
        request_interval=sync_cfg.request_interval,
        done_value=cfg.columns.done_value,
    )


def echo_report(report: SyncReport) -> None:
    """Print a short summary of the run."""
    for target_report in report.targets:
        name = target_report.target.calendar_name
        if target_report.failed:
            typer.echo(f'{name}: skipped ({target_report.error})')
            continue
        counts = ', '.join(f'{action.value}={n}' for action, n in target_report.actions.items() if n)
        typer.echo(f'{name}: {target_report.n_records} task(s) {counts}'.rstrip())
    if report.failed:
        typer.echo(f'Sync failed: {report.critical_error}', err=True)
    else:
        typer.echo(f'Done. {report.count(SyncAction.FAILED)} task(s) failed.')


@app.command()
def run() -> None:
    """Sync all configured Notion databases into their Google calendars once"""
    cfg = get_or_create_cfg()
    if cfg.notion_gcal_sync.debug:
        activate_debug_mode()
    if not cfg.targets:
        typer.echo(f'Error: No targets configured in {get_cfg_file()}', err=True)
        raise typer.Exit(1)

    try:
        store, gcal = NotionStore(create_notion_client(cfg), cfg.columns), GCalClient(cfg)
    except ConfigurationError as err:
        typer.echo(f'Error: {err}', err=True)
        raise typer.Exit(1) from err

    with store, gcal:
        report = build_reconciler(cfg, store, gcal).run()
    _logger.debug(f'Report of the run: {report.model_dump_json()}')

    echo_report(report)
    if report.failed:
        raise typer.Exit(1)


@app.command()
def config() -> None:
    """Display the current configuration file path and contents"""
    cfg_file = get_cfg_file()
    cfg = get_or_create_cfg()

    typer.echo(f'Config file: {cfg_file}')
    typer.echo('Configuration:')
    typer.echo('-' * 40)
    cfg_dict = cfg.model_dump(mode='json', exclude_none=True, exclude=SECRET_FIELDS)
    typer.echo(tomli_w.dumps(cfg_dict))


@app.command()
def calendars() -> None:
    """List all calendars of the Google account"""
    with GCalClient(read_only=True) as gcal:
        for calendar in gcal.all_calendars():
            typer.echo(f'- {calendar.summary} (ID: {calendar.id})')
