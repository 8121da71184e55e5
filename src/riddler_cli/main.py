"""
riddler CLI - main entry point.
"""
import logging
from pathlib import Path
from typing import Optional

import click

from .analyze import analyze
from .config import Config
from .cookies import cookie
from .logs import logs, replay
from .monitor import interfaces, monitor
from .proxy import proxy
from .request import request

LOG_LEVELS = ('error', 'warning', 'info', 'debug')


@click.group()
@click.option('--log-level', type=click.Choice(LOG_LEVELS), default='warning', show_default=True,
              help='Verbosity of operational log messages')
@click.option('--cookie-file', type=click.Path(dir_okay=False, path_type=Path),
              envvar='RIDDLER_COOKIE_FILE', help='Cookie jar file (default: ./cookies.json)')
@click.option('--log-file', type=click.Path(dir_okay=False, path_type=Path),
              envvar='RIDDLER_LOG_FILE', help='Request log file (default: ./requests.log)')
@click.pass_context
def cli(ctx: click.Context, log_level: str, cookie_file: Optional[Path], log_file: Optional[Path]):
    """riddler - HTTP traffic capture, replay and analysis."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = Config()
    if cookie_file is not None:
        config.storage.cookie_file = cookie_file
    if log_file is not None:
        config.storage.log_file = log_file
    ctx.obj = config


cli.add_command(interfaces)
cli.add_command(monitor)
cli.add_command(request)
cli.add_command(cookie)
cli.add_command(logs)
cli.add_command(replay)
cli.add_command(proxy)
cli.add_command(analyze)

if __name__ == "__main__":
    cli()
