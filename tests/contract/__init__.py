"""Contract tests shared by every storage backend.

The ``store`` fixture is parametrized over memory, blob and table, so each
test here asserts behaviour callers may rely on whichever backend is
configured: etag compare-and-swap, migration on read, date index upkeep.
"""
