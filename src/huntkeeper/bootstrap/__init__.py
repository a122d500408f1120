"""Wiring of configuration, stores and repositories."""

from .adapter_registry import (
    AdapterRegistry,
    build_repositories,
    build_store,
    default_registry,
)

__all__ = ["AdapterRegistry", "build_repositories", "build_store", "default_registry"]
