"""sqlite-specific fixtures"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from alembic import command
from sqlalchemy.engine import URL

from huntkeeper import config
from huntkeeper.adapters.db.engine import make_engine

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


@pytest.fixture
def sqlite_url(tmp_path: Path) -> str:
    """URL of a per-test SQLite file (not yet migrated)."""
    return str(URL.create("sqlite+pysqlite", database=str(tmp_path / "huntkeeper.db")))


@pytest.fixture
def sqlite_engine_file(sqlite_url: str) -> Iterator[Engine]:
    """File-backed SQLite engine migrated via Alembic (per test).

    A temp *file* rather than ``:memory:`` so the schema created by Alembic
    is visible to every pooled connection. Each test gets its own file; there
    is no downgrade on teardown.

    Yields:
        Engine: SQLAlchemy engine from `make_engine()` (PRAGMAs applied).
    """
    command.upgrade(config.build_alembic_config(sqlite_url), "head")
    test_engine = make_engine(sqlite_url)
    try:
        yield test_engine
    finally:
        test_engine.dispose()
