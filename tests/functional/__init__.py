"""Functional tests of the ``huntkeeper`` command line."""
