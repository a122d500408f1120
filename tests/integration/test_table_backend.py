"""Table backend against a real (Alembic-migrated) SQLite file."""

from __future__ import annotations

import pytest
from alembic import command
from sqlalchemy import create_engine, inspect, select

from huntkeeper import config
from huntkeeper.adapters.storage import SqlAlchemyTableStore
from huntkeeper.adapters.storage.table import IndexRow
from huntkeeper.adapters.storage.table_schema import event_date_index
from huntkeeper.bootstrap import build_repositories
from huntkeeper.interfaces.errors import BackendUnavailableError
from tests.fixtures.documents import event_dict

# pylint: disable=redefined-outer-name

TABLES = {"registry_entities", "organization_entities", "event_date_index"}


@pytest.fixture
def table_store(sqlite_engine_file) -> SqlAlchemyTableStore:
    return SqlAlchemyTableStore(sqlite_engine_file)


def _index_rows(store: SqlAlchemyTableStore) -> set[tuple[str, str]]:
    with store.engine.connect() as conn:
        rows = conn.execute(select(event_date_index.c.partition_key, event_date_index.c.row_key))
        return {(day, row_key) for day, row_key in rows}


def test_upgrade_creates_backend_tables(sqlite_engine_file):
    inspector = inspect(sqlite_engine_file)
    assert TABLES <= set(inspector.get_table_names())
    assert "ix_event_date_index_org_slug" in {
        ix["name"] for ix in inspector.get_indexes("event_date_index")
    }


def test_downgrade_drops_backend_tables(sqlite_url):
    cfg = config.build_alembic_config(sqlite_url)
    command.upgrade(cfg, "head")
    command.downgrade(cfg, "base")

    engine = create_engine(sqlite_url)
    try:
        assert not TABLES & set(inspect(engine).get_table_names())
    finally:
        engine.dispose()


def test_missing_schema_is_backend_unavailable(sqlite_url):
    engine = create_engine(sqlite_url)
    try:
        with pytest.raises(BackendUnavailableError):
            SqlAlchemyTableStore(engine).read("registry.json")
    finally:
        engine.dispose()


def test_schema_version_column_tracks_document(table_store):
    table_store.write("orgs/acme.json", {"schemaVersion": "1.1.0"})
    assert table_store.read("orgs/acme.json").payload == {"schemaVersion": "1.1.0"}


def test_index_rows_follow_repository_writes(table_store, validator, make_org, make_event):
    registry_repo, event_repo = build_repositories(table_store, validator)

    registry_repo.upsert_organization(
        "acme", make_org("acme", hunts=[event_dict(), event_dict(id="e2", startDate="2025-07-02", endDate="2025-07-02")])
    )
    assert _index_rows(table_store) == {("2025-07-01", "acme:e1"), ("2025-07-02", "acme:e2")}

    event_repo.upsert_event("acme", make_event(startDate="2025-09-01", endDate="2025-09-01"))
    assert _index_rows(table_store) == {("2025-09-01", "acme:e1"), ("2025-07-02", "acme:e2")}

    registry_repo.upsert_organization("acme", make_org("acme", hunts=[]))
    assert _index_rows(table_store) == set()


def test_index_entries_carry_display_columns(table_store):
    table_store.put_index_entry(
        IndexRow(day="2025-07-01", org_slug="acme", event_id="e1", event_name="Summer", status="scheduled")
    )
    table_store.put_index_entry(
        IndexRow(day="2025-07-01", org_slug="zeta", event_id="z1")
    )

    rows = table_store.index_entries("2025-07-01")

    assert [(r.org_slug, r.event_id, r.event_name) for r in rows] == [
        ("acme", "e1", "Summer"),
        ("zeta", "z1", None),
    ]
    assert table_store.index_entries("2025-07-02") == []
