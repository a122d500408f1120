"""Logging helpers used by the huntkeeper CLI.

Console output goes through a Rich handler on stderr. An optional in-memory
"flight recorder" buffers DEBUG records and dumps them to a file when a
WARNING or worse shows up, which is how failed write-backs and stale index
entries (logged, never raised) can be inspected after the fact.
"""

from __future__ import annotations

import logging
import os
import platform
import sys
from logging.handlers import MemoryHandler
from pathlib import Path
from typing import TYPE_CHECKING, Literal, TypeAlias

import alembic
import pydantic
import sqlalchemy
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from logging import Logger

    from huntkeeper.config import StoreConfig

# pylint: disable=too-few-public-methods

PROJECT_PREFIX = "huntkeeper"

ColorSystem: TypeAlias = Literal["auto", "standard", "256", "truecolor", "windows"]


class ThirdPartyPrefixFilter(logging.Filter):
    """Tag records from other libraries with a short ``[name]`` prefix.

    Project records get an empty prefix. Never drops a record.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith(PROJECT_PREFIX):
            record.prefix = ""
        else:
            # "sqlalchemy.engine.Engine" -> "[sqlalchemy]"
            record.prefix = f"[{record.name.split('.')[0]}]"
        return True


def config_console_handler(
    level: int = logging.INFO, debug_mode: bool = False, color: bool = True
) -> RichHandler:
    """Configure and return a RichHandler writing to stderr.

    Args:
        level: Minimum level for console output (DEBUG when ``debug_mode``).
        debug_mode: Show timestamps, logger names and source paths.
        color: Enable color output; mirrors click-extra's ``--color/--no-color``.

    Returns:
        RichHandler: Handler to attach to the root logger.
    """
    color_system: ColorSystem | None = "auto" if color else None
    console = Console(color_system=color_system, stderr=True)

    if debug_mode:
        level = logging.DEBUG

    handler = RichHandler(
        level=level,
        console=console,
        rich_tracebacks=True,
        show_time=False,
        show_path=debug_mode,
        enable_link_path=debug_mode,
    )
    if debug_mode:
        handler.setFormatter(logging.Formatter("%(asctime)s %(name)s: %(message)s"))
    else:
        handler.setFormatter(logging.Formatter("%(prefix)s %(message)s"))
        handler.addFilter(ThirdPartyPrefixFilter())
    return handler


def config_flight_recorder(
    path: Path,
    capacity: int = 2000,
    flush_level: int = logging.WARNING,
    flush_on_close: bool = False,
) -> MemoryHandler:
    """Configure an in-memory flight recorder backed by ``path``.

    Up to ``capacity`` records are buffered; the buffer is written out when a
    record at ``flush_level`` or above arrives, and on close when
    ``flush_on_close`` is set.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] [%(process)d:%(threadName)s] %(levelname)s %(name)s:%(lineno)d: %(message)s"
        )
    )
    return MemoryHandler(
        capacity=capacity,
        flushLevel=flush_level,
        target=file_handler,
        flushOnClose=flush_on_close,
    )


def describe_store(store_config: StoreConfig | None) -> str:
    """Short human description of the configured backend, e.g. ``blob (/data)``."""
    if store_config is None:
        return "<unconfigured>"
    kind, location = store_config.selection_key
    if location is None:
        return kind.value
    return f"{kind.value} ({location})"


def log_startup(  # pylint: disable=too-many-arguments
    logger: Logger,
    *,
    app_version: str,
    level: int,
    handlers: list[logging.Handler],
    log_path: Path | None,
    flight_recorder: bool,
    flight_capacity: int | None,
    force_flush_fr: bool,
    logger_levels: dict[str, int],
    store_config: StoreConfig | None = None,
) -> None:
    """Log a one-line startup summary, then DEBUG diagnostics.

    Args:
        logger: Logger used to emit startup messages.
        app_version: Application version string to display.
        level: Effective console logging level (numeric).
        handlers: Active handlers attached to the root logger.
        log_path: Flight-recorder output file, or None.
        flight_recorder: Whether the flight recorder is enabled.
        flight_capacity: Flight recorder buffer size, or None.
        force_flush_fr: Whether the flight recorder flushes on close.
        logger_levels: Per-logger level overrides.
        store_config: Storage configuration, when one could be loaded.
    """
    logger.info(
        "huntkeeper %s: console=%s, flight-recorder=%s",
        app_version,
        logging.getLevelName(level),
        "ON" if flight_recorder else "OFF",
    )

    logger.debug("Python: %s", sys.version.split()[0])
    logger.debug("Platform: %s %s", platform.system(), platform.release())
    logger.debug("PID: %s", os.getpid())
    logger.debug("CWD: %s", Path.cwd())
    logger.debug("Pydantic: %s", pydantic.VERSION)
    logger.debug("SQLAlchemy: %s", sqlalchemy.__version__)
    logger.debug("Alembic: %s", alembic.__version__)
    logger.debug("Storage backend: %s", describe_store(store_config))
    if store_config is not None:
        logger.debug(
            "Validation: auto_migrate=%s, strict=%s",
            store_config.auto_migrate,
            store_config.strict,
        )
    logger.debug("Handlers: %s", [type(h).__name__ for h in handlers])
    if flight_recorder:
        logger.debug(
            "Flight recorder: path=%s, capacity=%s, flush_on_close=%s",
            str(log_path) if log_path else "<none>",
            flight_capacity,
            force_flush_fr,
        )
    logger.debug(
        "Per-logger overrides: %s",
        {name: logging.getLevelName(lvl) for name, lvl in logger_levels.items()}
        or "<none>",
    )
