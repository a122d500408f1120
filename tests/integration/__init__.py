"""Integration tests for the table backend and its Alembic schema."""
