"""huntkeeper test suite.

Layout
- unit/         : one module at a time; memory store and temp dirs only.
- contract/     : document store and repository behaviour, run against the
                  memory, blob and table backends.
- integration/  : the table backend on an Alembic-migrated SQLite file.
- functional/   : the ``huntkeeper`` CLI driven through Click's CliRunner.
- fixtures/     : pytest plugins (documents, stores, SQLite engines).
- helpers/      : shared utilities, no tests.

Each directory's conftest adds its default marker; property-based tests
carry ``@pytest.mark.property`` and slow ones ``@pytest.mark.slow``.
"""
