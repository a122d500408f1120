"""Adapters: concrete implementations of the HUNTKEEPER interfaces.

- ``storage``: document stores (memory, local object/blob, SQL table).
- ``repositories``: registry/event repositories built on a document store.
- ``db``: SQLAlchemy engine, shared metadata and Alembic migrations.
"""
