"""SQL table backend (SQLAlchemy Core).

Maps document keys onto the tables of ``table_schema``: ``registry.json`` is
the single ``registry_entities`` row ``('app', 'config')`` and
``orgs/{slug}.json`` is the ``organization_entities`` row of that slug.
It also maintains the dedicated ``event_date_index`` table.

Writes
- Conditional: ``UPDATE ... WHERE etag = :expected``; zero affected rows
  means the etag is stale (or the row is gone) -> ``ConcurrencyConflictError``.
- Unconditional: update by key, inserting when the row does not exist yet.
- Every write issues a fresh ``uuid4`` etag.

Errors
- ``IntegrityError`` on insert (a concurrent creator won) ->
  ``ConcurrencyConflictError``.
- Any other ``DBAPIError`` (connection lost, database locked...) ->
  ``BackendUnavailableError``.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from sqlalchemy import Table, delete, insert, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError

from huntkeeper.domain.models import DateIndexEntry
from huntkeeper.interfaces.document_store import (
    REGISTRY_KEY,
    DocumentStore,
    StoredDocument,
    organization_key,
    slug_from_key,
)
from huntkeeper.interfaces.errors import (
    BackendUnavailableError,
    ConcurrencyConflictError,
)

from .table_schema import (
    REGISTRY_PARTITION,
    REGISTRY_ROW,
    event_date_index,
    organization_entities,
    registry_entities,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection, Engine
    from sqlalchemy.sql.elements import ColumnElement

__all__ = ["IndexRow", "SqlAlchemyTableStore"]

logger = logging.getLogger(__name__)

ROW_KEY_SEPARATOR = ":"  # pragma: no mutate


def index_row_key(org_slug: str, event_id: str) -> str:
    return f"{org_slug}{ROW_KEY_SEPARATOR}{event_id}"


class IndexRow(DateIndexEntry):
    """One ``event_date_index`` row: a date index entry plus display columns."""

    day: str
    event_name: str | None = None
    status: str | None = None


class SqlAlchemyTableStore(DocumentStore):
    """``DocumentStore`` over SQL tables, plus the dedicated date-index table."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # --------------------------------------------------------------------- #
    # Interface implementation
    # --------------------------------------------------------------------- #

    def read(self, key: str) -> StoredDocument | None:
        table, where, _ = self._locate(key)
        stmt = select(table.c.body, table.c.etag).where(where)
        try:
            with self.engine.connect() as conn:
                row = conn.execute(stmt).one_or_none()
        except DBAPIError as e:
            raise BackendUnavailableError(str(e)) from e
        if row is None:
            return None
        return StoredDocument(key=key, payload=dict(row.body), etag=row.etag)

    def write(
        self, key: str, payload: dict[str, Any], expected_etag: str | None = None
    ) -> str:
        table, where, identity = self._locate(key)
        etag = uuid.uuid4().hex
        values = {
            "etag": etag,
            "schema_version": payload.get("schemaVersion"),
            "body": payload,
            "updated_at": datetime.now(timezone.utc),
        }
        try:
            with self.engine.begin() as conn:
                if expected_etag is not None:
                    stmt = update(table).where(where, table.c.etag == expected_etag)
                    if conn.execute(stmt.values(**values)).rowcount != 1:
                        raise ConcurrencyConflictError(
                            key, expected_etag, self._current_etag(conn, table, where)
                        )
                elif conn.execute(update(table).where(where).values(**values)).rowcount == 0:
                    conn.execute(insert(table).values(**identity, **values))
        except IntegrityError as e:
            raise ConcurrencyConflictError(key, expected_etag, None) from e
        except DBAPIError as e:
            raise BackendUnavailableError(str(e)) from e
        logger.debug("Stored %s (etag %s)", key, etag)
        return etag

    def list_keys(self, prefix: str = "") -> list[str]:
        try:
            with self.engine.connect() as conn:
                has_registry = (
                    conn.execute(
                        select(registry_entities.c.etag).where(self._registry_where())
                    ).first()
                    is not None
                )
                slugs = conn.execute(select(organization_entities.c.org_slug)).scalars().all()
        except DBAPIError as e:
            raise BackendUnavailableError(str(e)) from e
        keys = [organization_key(slug) for slug in slugs]
        if has_registry:
            keys.append(REGISTRY_KEY)
        return sorted(k for k in keys if k.startswith(prefix))

    # --------------------------------------------------------------------- #
    # Date index table
    # --------------------------------------------------------------------- #

    def index_entries(self, day: str) -> list[IndexRow]:
        """Rows of ``event_date_index`` for ``day``, ordered by row key."""
        stmt = (
            select(event_date_index)
            .where(event_date_index.c.partition_key == day)
            .order_by(event_date_index.c.row_key)
        )
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).mappings().all()
        except DBAPIError as e:
            raise BackendUnavailableError(str(e)) from e
        return [
            IndexRow(
                day=row["partition_key"],
                org_slug=row["org_slug"],
                event_id=row["event_id"],
                event_name=row["event_name"],
                status=row["status"],
            )
            for row in rows
        ]

    def put_index_entry(self, row: IndexRow) -> None:
        """Insert or refresh ``row``, removing the event's rows under other dates."""
        row_key = index_row_key(row.org_slug, row.event_id)
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    delete(event_date_index).where(event_date_index.c.row_key == row_key)
                )
                conn.execute(insert(event_date_index).values(**self._index_values(row)))
        except DBAPIError as e:
            raise BackendUnavailableError(str(e)) from e

    def replace_organization_index(self, org_slug: str, rows: Iterable[IndexRow]) -> None:
        """Make the rows of ``org_slug`` exactly ``rows``."""
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    delete(event_date_index).where(event_date_index.c.org_slug == org_slug)
                )
                values = [self._index_values(r) for r in rows]
                if values:
                    conn.execute(insert(event_date_index), values)
        except DBAPIError as e:
            raise BackendUnavailableError(str(e)) from e

    # --------------------------------------------------------------------- #
    # Internals
    # --------------------------------------------------------------------- #

    @staticmethod
    def _registry_where() -> ColumnElement[bool]:
        return (registry_entities.c.partition_key == REGISTRY_PARTITION) & (
            registry_entities.c.row_key == REGISTRY_ROW
        )

    def _locate(self, key: str) -> tuple[Table, ColumnElement[bool], dict[str, str]]:
        """Map a document key onto (table, row predicate, primary key values).

        Raises:
            ValueError: ``key`` is neither the registry nor an organization key.
        """
        if key == REGISTRY_KEY:
            return (
                registry_entities,
                self._registry_where(),
                {"partition_key": REGISTRY_PARTITION, "row_key": REGISTRY_ROW},
            )
        if (slug := slug_from_key(key)) is not None:
            return (
                organization_entities,
                organization_entities.c.org_slug == slug,
                {"org_slug": slug},
            )
        raise ValueError(f"Unsupported document key for the table backend: {key!r}")

    @staticmethod
    def _current_etag(
        conn: Connection, table: Table, where: ColumnElement[bool]
    ) -> str | None:
        return conn.execute(select(table.c.etag).where(where)).scalar_one_or_none()

    @staticmethod
    def _index_values(row: IndexRow) -> dict[str, Any]:
        return {
            "partition_key": row.day,
            "row_key": index_row_key(row.org_slug, row.event_id),
            "org_slug": row.org_slug,
            "event_id": row.event_id,
            "event_name": row.event_name,
            "status": row.status,
        }
