"""``huntkeeper db``: forward-only Alembic wrappers for the table backend.

Only forward operations are offered; ``downgrade`` and ``stamp`` are left out.
Notices go to stderr and Alembic's own output to stdout.

Requirements
- ``HUNTKEEPER_DB_URL`` must be set for commands that connect.

Failure modes
- Missing or malformed ``HUNTKEEPER_DB_URL``, or an unreachable database,
  end in a ``ClickException`` with guidance.
"""

from __future__ import annotations

import sys
from enum import Enum
from typing import TYPE_CHECKING

import click
import click_extra as clickx
from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import text
from sqlalchemy.exc import ArgumentError, OperationalError

from huntkeeper import config
from huntkeeper.adapters.db.engine import make_engine
from huntkeeper.adapters.storage import SqlAlchemyTableStore
from huntkeeper.interfaces.document_store import REGISTRY_KEY

from .helpers import error, sanitize_url, success, warn

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

MISSING_DB_URL_MSG = (
    "HUNTKEEPER_DB_URL is not set.\n\n"
    "Set it before running this command, e.g.:\n"
    "  export HUNTKEEPER_DB_URL='sqlite:///huntkeeper.db'\n"
    "  or in PowerShell:\n"
    "  $env:HUNTKEEPER_DB_URL='sqlite:///huntkeeper.db'"
)

INVALID_URL_FORMAT_MSG = (
    "The value of HUNTKEEPER_DB_URL is not a valid SQLAlchemy database URL."
)

CANNOT_CONNECT_MSG = (
    "HUNTKEEPER_DB_URL is set, but the database is not reachable.\n"
    "Please ensure the database is running and the URL is correct."
)

UPGRADE_SCHEMA_WARNING = (
    "This will upgrade the table backend schema to the latest version.\n"
    "Please ensure you have a backup before proceeding."
)

UPGRADE_SCHEMA_INSTRUCTIONS = "Run 'huntkeeper db upgrade' to update the schema."


def _check_connection(url: str) -> None:
    engine = make_engine(url)
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))  # pragma: no mutate


def _get_url() -> str:
    try:
        url = config.get_db_url()
    except config.DatabaseUrlNotSetError as e:
        raise click.ClickException(MISSING_DB_URL_MSG) from e
    try:
        _check_connection(url)
    except OperationalError as e:
        raise click.ClickException(CANNOT_CONNECT_MSG) from e
    except ArgumentError as e:
        raise click.ClickException(INVALID_URL_FORMAT_MSG) from e
    return url


verbose_option = click.option(
    "--verbose",
    "-v",
    "verbose",
    is_flag=True,
    help="Show alembic's more verbose output.",
)


@click.group(cls=clickx.ExtraGroup)
def db() -> None:
    """Table backend schema management."""


@db.command()
@verbose_option
def current(verbose: bool) -> None:
    """Show current DB revision."""
    cfg = config.build_alembic_config(db_url=_get_url(), stdout=sys.stdout)
    command.current(cfg, verbose=verbose)


@db.command()
@verbose_option
def heads(verbose: bool) -> None:
    """Show available head revisions."""
    command.heads(config.build_alembic_config(stdout=sys.stdout), verbose=verbose)


@db.command()
@verbose_option
@click.option(
    "--indicate-current",
    "-i",
    "indicate_current",
    is_flag=True,
    help="Indicate the current revision.",
)
def history(verbose: bool, indicate_current: bool) -> None:
    """Show revision history."""
    url = _get_url() if indicate_current else None
    cfg = config.build_alembic_config(db_url=url, stdout=sys.stdout)
    command.history(cfg, verbose=verbose, indicate_current=indicate_current)


@db.command()
@click.option("--sql", is_flag=True, help="Generate SQL without executing.")
@click.option("--force", is_flag=True, help="Upgrade without confirmation.")
def upgrade(sql: bool, force: bool) -> None:
    """Upgrade the database to the head revision."""
    url = _get_url()
    cfg = config.build_alembic_config(db_url=url, stdout=sys.stdout)
    if not force and not sql:
        warn(UPGRADE_SCHEMA_WARNING)
        click.secho(f"db: {click.style(sanitize_url(url), underline=True)}", err=True)
        click.confirm("Are you sure you want to proceed?", abort=True)
    command.upgrade(cfg, revision="head", sql=sql)
    success("Upgrade complete!")


def _get_current_revision(engine: Engine) -> str | None:
    with engine.connect() as conn:
        return MigrationContext.configure(conn).get_current_revision()


def _get_head_revision(cfg: Config) -> str | None:
    return ScriptDirectory.from_config(cfg).get_current_head()


class MigrationStatus(Enum):
    """Migration status of the database schema."""

    UP_TO_DATE = "up to date"
    OUT_OF_DATE = "out of date"
    UNINITIALIZED = "uninitialized"


@db.command()
def status() -> None:
    """Show connection, schema status and stored documents."""
    try:
        url = _get_url()
    except click.ClickException as e:
        error("Cannot connect to database")
        click.echo(e.format_message())
        return

    engine = make_engine(url)
    success("Database reachable")
    click.echo(f"Backend : {engine.dialect.name}")
    click.echo(f"URL     : {sanitize_url(url)}")
    rev = _get_current_revision(engine)
    head = _get_head_revision(config.build_alembic_config(db_url=url))
    if rev == head:
        migration_status = MigrationStatus.UP_TO_DATE
    elif rev is None:
        migration_status = MigrationStatus.UNINITIALIZED
    else:
        migration_status = MigrationStatus.OUT_OF_DATE  # pragma: nocover

    click.echo(
        f"Schema  : {rev} ({migration_status.value})"
        if rev is not None
        else f"Schema  : {migration_status.value}"
    )
    if migration_status is not MigrationStatus.UP_TO_DATE:
        warn(UPGRADE_SCHEMA_INSTRUCTIONS)
        return

    store = SqlAlchemyTableStore(engine)
    registry = "present" if store.read(REGISTRY_KEY) is not None else "not written yet"
    click.echo(f"Registry: {registry}")
    click.echo(f"Orgs    : {len(store.list_organization_slugs())}")
