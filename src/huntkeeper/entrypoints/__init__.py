"""Entry points (command line)."""
