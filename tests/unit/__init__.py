"""Unit tests: models, date index, migrations, validation, single adapters."""
