"""Alembic environment for the huntkeeper table backend.

Policy:
  - compare_type and compare_server_default are on, so autogenerate sees drift
  - render_as_batch on SQLite (ALTER TABLE emulation)
  - URL precedence: `-x url=...` > config sqlalchemy.url > HUNTKEEPER_DB_URL
"""

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

# registers the backend tables on the shared metadata
import huntkeeper.adapters.storage.table_schema  # noqa: F401 # pylint: disable=unused-import
from huntkeeper.adapters.db.metadata import metadata

# pylint: disable=no-member

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = metadata


def get_url() -> str:
    """Resolve the DB URL: `-x url` > config > HUNTKEEPER_DB_URL."""
    url = context.get_x_argument(as_dictionary=True).get("url")
    if not url:
        url = config.get_main_option("sqlalchemy.url")
    if not url or "%(" in url:  # unexpanded ini placeholder
        url = os.environ.get("HUNTKEEPER_DB_URL")
    if not url:
        raise RuntimeError("Set HUNTKEEPER_DB_URL to your database URL.")
    return url


def run_migrations_offline() -> None:
    """Emit SQL for the migrations without connecting."""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run the migrations against a live connection."""
    connectable = engine_from_config(
        {"sqlalchemy.url": get_url()},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            compare_server_default=True,
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
