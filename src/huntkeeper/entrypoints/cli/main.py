"""huntkeeper CLI entry point.

Defines the top-level ``huntkeeper`` command (via Click-Extra) and registers
the command groups:

- ``huntkeeper db``: forward-only schema management for the table backend.
- ``huntkeeper data``: validate, repair and copy stored documents.

The group itself only configures logging (Rich console handler plus the
flight recorder); storage is configured through ``HUNTKEEPER_*`` variables.

Examples
    $ huntkeeper --version
    $ huntkeeper -v data check --repair
    $ huntkeeper db upgrade
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import click
import click_extra as clickx
from platformdirs import user_log_dir

from huntkeeper import __version__
from huntkeeper.config import ConfigError, load_store_config
from huntkeeper.logging import config_console_handler, config_flight_recorder, log_startup

from .data import data as data_group
from .db import db as db_group
from .helpers.log_level_parser import parse_log_level

if TYPE_CHECKING:
    from logging import Handler

logger = logging.getLogger(__name__)


HELP = """huntkeeper command-line interface.

    huntkeeper stores scavenger-hunt data (a deployment-wide registry plus one
    document per organization) in interchangeable backends, upgrading older
    document versions as they are read.
    """


@clickx.extra_group(
    version=__version__,
    help=HELP,
    params=[
        clickx.ColorOption(show_envvar=True),
        clickx.TimerOption(show_envvar=True),
        clickx.ExtraVersionOption(),
    ],
)
@click.option(
    "--verbose",
    "-v",
    "verbose_count",
    count=True,
    help=(
        "Increase the default WARNING verbosity by one level "
        "for each repetition of the option."
    ),
    default=0,
)
@click.option(
    "--quiet",
    "-q",
    "quiet_count",
    count=True,
    help=(
        "Decrease the default WARNING verbosity by one level "
        "for each repetition of the option."
    ),
    default=0,
)
@click.option(
    "--debug/--no-debug",
    is_flag=True,
    help="Enable debug mode (extra developer diagnostics beyond -vvv).",
    default=False,
)
@click.option(
    "--log-path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to log file (overrides default flight recorder path).",
    default=Path(user_log_dir("huntkeeper", appauthor=False)) / "latest.log",
    envvar="HUNTKEEPER_LOG_PATH",
    show_default=True,
    show_envvar=True,
)
@click.option(
    "--flight-recorder-capacity",
    type=int,
    default=2000,
    hidden=True,
    envvar="HUNTKEEPER_FLIGHT_RECORDER_CAPACITY",
    show_envvar=True,
    help="Capacity of the flight recorder (in number of log records).",
)
@click.option(
    "--flight-recorder/--no-flight-recorder",
    "flight_recorder",
    is_flag=True,
    help=(
        "Keep the last N log records at DEBUG granularity (unaffected by -v/-q) "
        "and write them to --log-path when a WARNING/ERROR occurs, or on exit "
        "if --force-flush is set. Console verbosity is unchanged."
    ),
    default=True,
    show_envvar=True,
)
@click.option(
    "--force-flush/--no-force-flush",
    "force_flush_flight_recorder",
    is_flag=True,
    help="Write the flight recorder buffer to --log-path on exit.",
    default=False,
    show_default=True,
    show_envvar=True,
)
@click.option(
    "-L",
    "--logger-level",
    "logger_levels",
    multiple=True,
    callback=parse_log_level,
    help=(
        "Set the MINIMUM LEVEL of specific LOGGERS (NAME=LEVEL), for both the "
        "console and the flight recorder. Repeatable (e.g. -L sqlalchemy=INFO "
        "-L huntkeeper.adapters=DEBUG)."
    ),
    default=("sqlalchemy=WARNING", "alembic=WARNING"),
    show_default=True,
    show_envvar=True,
)
@clickx.pass_context
def huntkeeper(  # pylint: disable=too-many-arguments, too-many-positional-arguments
    ctx: click.Context,
    verbose_count: int,
    quiet_count: int,
    debug: bool,
    log_path: Path,
    flight_recorder_capacity: int,
    flight_recorder: bool,
    force_flush_flight_recorder: bool,
    logger_levels: dict[str, int],
) -> None:
    """huntkeeper command-line interface."""

    level = logging.WARNING - (10 * verbose_count) + (10 * quiet_count)
    level = max(logging.DEBUG, min(logging.CRITICAL, level))

    use_color = ctx.color is not False  # None or True => allow color
    handlers: list[Handler] = [
        config_console_handler(level=level, debug_mode=debug, color=use_color)
    ]
    if flight_recorder:
        handlers.append(
            config_flight_recorder(
                path=log_path,
                capacity=flight_recorder_capacity,
                flush_on_close=force_flush_flight_recorder,
            )
        )

    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)
    for name, lvl in logger_levels.items():
        logging.getLogger(name).setLevel(lvl)

    try:
        store_config = load_store_config()
    except ConfigError as e:
        logger.debug("Storage is not configured: %s", e)
        store_config = None

    log_startup(
        logger,
        app_version=__version__,
        level=level,
        handlers=handlers,
        log_path=log_path,
        flight_recorder=flight_recorder,
        flight_capacity=flight_recorder_capacity if flight_recorder else None,
        force_flush_fr=force_flush_flight_recorder,
        logger_levels=logger_levels,
        store_config=store_config,
    )

    ctx.call_on_close(logging.shutdown)


huntkeeper.add_command(db_group)
huntkeeper.add_command(data_group)
