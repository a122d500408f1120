"""Tables of the SQL table backend.

The layout follows a partition/row-key design:

| Table                  | Key                                   | Holds                     |
|------------------------|---------------------------------------|---------------------------|
| ``registry_entities``  | (``partition_key``, ``row_key``)      | the registry, one row     |
| ``organization_entities`` | ``org_slug``                       | one organization per row  |
| ``event_date_index``   | (``partition_key``=date, ``row_key``=``"{orgSlug}:{eventId}"``) | date index |

Documents are stored whole in ``body``; ``etag`` rotates on every write and
is the compare-and-swap token. ``event_date_index`` is authoritative for date
queries in this backend.
"""

from __future__ import annotations

from sqlalchemy import Column, Index, String, Table, text

from huntkeeper.adapters.db.metadata import metadata
from huntkeeper.adapters.db.sa_types import PORTABLE_JSON, UTCDateTime

__all__ = ["event_date_index", "organization_entities", "registry_entities"]

REGISTRY_PARTITION = "app"  # pragma: no mutate
REGISTRY_ROW = "config"  # pragma: no mutate

registry_entities = Table(
    "registry_entities",
    metadata,
    Column("partition_key", String(64), primary_key=True, comment="Always 'app'."),
    Column("row_key", String(64), primary_key=True, comment="Always 'config'."),
    Column(
        "etag",
        String(64),
        nullable=False,
        comment="Opaque concurrency token, rotated on every write.",
    ),
    Column("schema_version", String(16), nullable=True, comment="Document schemaVersion."),
    Column("body", PORTABLE_JSON, nullable=False, comment="Registry document (JSON)."),
    Column(
        "updated_at",
        UTCDateTime(),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        comment="Time of the last write (UTC).",
    ),
    comment="Deployment-wide registry document, a single fixed-key row.",
)

organization_entities = Table(
    "organization_entities",
    metadata,
    Column("org_slug", String(63), primary_key=True, comment="Organization slug."),
    Column(
        "etag",
        String(64),
        nullable=False,
        comment="Opaque concurrency token, rotated on every write.",
    ),
    Column("schema_version", String(16), nullable=True, comment="Document schemaVersion."),
    Column("body", PORTABLE_JSON, nullable=False, comment="Organization document (JSON)."),
    Column(
        "updated_at",
        UTCDateTime(),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        comment="Time of the last write (UTC).",
    ),
    comment="One organization document per row, keyed by slug.",
)

event_date_index = Table(
    "event_date_index",
    metadata,
    Column("partition_key", String(10), primary_key=True, comment="Start date YYYY-MM-DD."),
    Column("row_key", String(200), primary_key=True, comment="'{orgSlug}:{eventId}'."),
    Column("org_slug", String(63), nullable=False),
    Column("event_id", String(128), nullable=False),
    Column("event_name", String(200), nullable=True),
    Column("status", String(16), nullable=True),
    Index(None, "org_slug"),
    comment="Date -> event pointers; authoritative for date queries.",
)
