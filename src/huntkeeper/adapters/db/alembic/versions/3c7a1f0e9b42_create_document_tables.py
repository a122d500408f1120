"""create document and date index tables

Revision ID: 3c7a1f0e9b42
Revises:
Create Date: 2026-10-19 09:12:41.518204

"""

# pylint: disable=invalid-name

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

from huntkeeper.adapters.db.sa_types import PORTABLE_JSON, UTCDateTime

# pylint: disable=no-member

# revision identifiers, used by Alembic.
revision: str = "3c7a1f0e9b42"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _document_columns(kind: str) -> list[sa.Column]:
    return [
        sa.Column(
            "etag",
            sa.String(length=64),
            nullable=False,
            comment="Opaque concurrency token, rotated on every write.",
        ),
        sa.Column(
            "schema_version",
            sa.String(length=16),
            nullable=True,
            comment="Document schemaVersion.",
        ),
        sa.Column("body", PORTABLE_JSON, nullable=False, comment=f"{kind} document (JSON)."),
        sa.Column(
            "updated_at",
            UTCDateTime(),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
            comment="Time of the last write (UTC).",
        ),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "registry_entities",
        sa.Column("partition_key", sa.String(length=64), nullable=False, comment="Always 'app'."),
        sa.Column("row_key", sa.String(length=64), nullable=False, comment="Always 'config'."),
        *_document_columns("Registry"),
        sa.PrimaryKeyConstraint("partition_key", "row_key", name=op.f("pk_registry_entities")),
        comment="Deployment-wide registry document, a single fixed-key row.",
    )

    op.create_table(
        "organization_entities",
        sa.Column("org_slug", sa.String(length=63), nullable=False, comment="Organization slug."),
        *_document_columns("Organization"),
        sa.PrimaryKeyConstraint("org_slug", name=op.f("pk_organization_entities")),
        comment="One organization document per row, keyed by slug.",
    )

    op.create_table(
        "event_date_index",
        sa.Column(
            "partition_key", sa.String(length=10), nullable=False, comment="Start date YYYY-MM-DD."
        ),
        sa.Column("row_key", sa.String(length=200), nullable=False, comment="'{orgSlug}:{eventId}'."),
        sa.Column("org_slug", sa.String(length=63), nullable=False),
        sa.Column("event_id", sa.String(length=128), nullable=False),
        sa.Column("event_name", sa.String(length=200), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=True),
        sa.PrimaryKeyConstraint("partition_key", "row_key", name=op.f("pk_event_date_index")),
        comment="Date -> event pointers; authoritative for date queries.",
    )
    op.create_index(
        op.f("ix_event_date_index_org_slug"), "event_date_index", ["org_slug"], unique=False
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_event_date_index_org_slug"), table_name="event_date_index")
    op.drop_table("event_date_index")
    op.drop_table("organization_entities")
    op.drop_table("registry_entities")
