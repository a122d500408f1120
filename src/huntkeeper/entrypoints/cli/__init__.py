"""The ``huntkeeper`` command-line interface."""
