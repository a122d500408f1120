"""Shared SQLAlchemy `MetaData` object with a naming convention.

Every table definition attaches to this metadata so constraints and indexes
receive deterministic names, which keeps Alembic autogenerate free of
spurious drop/add pairs.

Naming convention:
    - Indexes:       ix_<table>_<col...>
    - Unique:        uq_<table>_<col...>
    - Check:         ck_<table>_<constraint_name>
    - Primary key:   pk_<table>
"""

from sqlalchemy import MetaData

#: Global metadata with enforced naming convention.
metadata = MetaData(
    naming_convention={
        "ix": "ix_%(table_name)s_%(column_0_N_name)s",
        "uq": "uq_%(table_name)s_%(column_0_N_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "pk": "pk_%(table_name)s",
    }
)
