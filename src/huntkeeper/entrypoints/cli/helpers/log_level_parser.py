"""Parsing of the ``-L/--logger-level NAME=LEVEL`` option.

Values may be repeated or given as one comma/space separated string (as
they arrive from the environment variable).
"""

import logging
import re

import click

DEFAULT_LIB_LEVELS = {"sqlalchemy": logging.WARNING, "alembic": logging.WARNING}


def _normalize_items(value: str | list[str] | tuple[str, ...] | None) -> list[str]:
    """Flatten ``value`` into non-empty ``NAME=LEVEL`` fragments."""
    if not value:
        return []
    chunks = [value] if isinstance(value, str) else list(value)
    return [item for chunk in chunks for item in re.split(r"[,\s]+", chunk) if item]


def parse_log_level(
    ctx: click.Context,  # pylint: disable=unused-argument
    param: click.Parameter | None,  # pylint: disable=unused-argument
    value: str | list[str] | tuple[str, ...] | None,
) -> dict[str, int]:
    """Click callback turning ``NAME=LEVEL`` pairs into a name -> level dict.

    The result starts from ``DEFAULT_LIB_LEVELS``; later items win.

    Raises:
        click.BadParameter: An item is not ``NAME=LEVEL`` or LEVEL is unknown.
    """
    levels = dict(DEFAULT_LIB_LEVELS)
    for item in _normalize_items(value):
        name, sep, level_str = item.partition("=")
        if not sep or not name.strip():
            raise click.BadParameter(f"Expected NAME=LEVEL, got {item!r}")
        level = logging.getLevelName(level_str.strip().upper())
        if not isinstance(level, int):
            raise click.BadParameter(f"Invalid log level: {level_str}")
        levels[name.strip()] = level
    return levels
