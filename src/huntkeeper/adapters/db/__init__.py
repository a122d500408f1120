"""SQL database plumbing: engine factory, shared metadata, custom types, Alembic."""
