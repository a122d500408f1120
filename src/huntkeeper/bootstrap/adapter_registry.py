"""Adapter registry: builds and caches the repositories for a configuration.

One ``AdapterRegistry`` holds at most one document store and one pair of
repositories. The store is cached by ``StoreConfig.selection_key`` (backend
kind plus location); the repositories also depend on the validation flags.

Reconfiguring never touches objects handed out earlier: a new selection
drops the cached store and repositories and the next ``get_*`` call builds
fresh ones, while callers holding the old instances keep using them.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from huntkeeper.adapters.db.engine import make_engine
from huntkeeper.adapters.repositories import (
    DocumentEventRepo,
    DocumentRegistryRepo,
    TableEventRepo,
    TableRegistryRepo,
)
from huntkeeper.adapters.storage import (
    LocalObjectStore,
    MemoryDocumentStore,
    SqlAlchemyTableStore,
)
from huntkeeper.config import BackendKind, StoreConfig, load_store_config
from huntkeeper.interfaces.document_store import DocumentStore
from huntkeeper.interfaces.event_repo import EventRepo
from huntkeeper.interfaces.registry_repo import RegistryRepo
from huntkeeper.schemas import ValidationService, build_validation_service

__all__ = ["AdapterRegistry", "build_repositories", "build_store", "default_registry"]

logger = logging.getLogger(__name__)


def build_store(config: StoreConfig) -> DocumentStore:
    """Create the document store ``config`` selects.

    The table backend expects its schema to exist (``huntkeeper db upgrade``).
    """
    if config.backend is BackendKind.MEMORY:
        return MemoryDocumentStore()
    if config.backend is BackendKind.BLOB:
        assert config.blob_root is not None
        return LocalObjectStore(config.blob_root)
    assert config.db_url is not None
    return SqlAlchemyTableStore(make_engine(config.db_url))


def build_repositories(
    store: DocumentStore,
    validator: ValidationService,
    *,
    auto_migrate: bool = True,
    strict: bool = False,
) -> tuple[DocumentRegistryRepo, DocumentEventRepo]:
    """Wrap ``store`` in the registry and event repositories suited to it."""
    if isinstance(store, SqlAlchemyTableStore):
        table_registry = TableRegistryRepo(
            store, validator, auto_migrate=auto_migrate, strict=strict
        )
        return table_registry, TableEventRepo(table_registry)
    registry = DocumentRegistryRepo(
        store, validator, auto_migrate=auto_migrate, strict=strict
    )
    return registry, DocumentEventRepo(registry)


class AdapterRegistry:
    """Thread-safe factory and cache for the configured repositories.

    Args:
        config: Initial configuration; when None it is read from the
            environment on first use (``load_store_config``).
        store_factory: Builds a store for a configuration. Tests swap it.
    """

    def __init__(
        self,
        config: StoreConfig | None = None,
        *,
        store_factory: Callable[[StoreConfig], DocumentStore] = build_store,
    ) -> None:
        self._lock = threading.Lock()
        self._config = config
        self._store_factory = store_factory
        self._validator: ValidationService | None = None
        self._store: DocumentStore | None = None
        self._repos: tuple[DocumentRegistryRepo, DocumentEventRepo] | None = None

    @property
    def config(self) -> StoreConfig:
        with self._lock:
            return self._current_config()

    def configure(self, config: StoreConfig) -> None:
        """Switch to ``config``; later ``get_*`` calls return new instances."""
        with self._lock:
            previous = self._config
            self._config = config
            if previous is None or previous.selection_key != config.selection_key:
                self._store = None
            self._repos = None
        logger.debug("Adapter registry configured for %s", config.backend.value)

    def reset(self) -> None:
        """Forget the configuration and every cached instance."""
        with self._lock:
            self._config = None
            self._store = None
            self._repos = None

    def get_registry_repo(self) -> RegistryRepo:
        return self._get_repos()[0]

    def get_event_repo(self) -> EventRepo:
        return self._get_repos()[1]

    # --------------------------------------------------------------------- #
    # Internals
    # --------------------------------------------------------------------- #

    def _current_config(self) -> StoreConfig:
        if self._config is None:
            self._config = load_store_config()
        return self._config

    def _get_repos(self) -> tuple[DocumentRegistryRepo, DocumentEventRepo]:
        with self._lock:
            if self._repos is None:
                config = self._current_config()
                if self._store is None:
                    self._store = self._store_factory(config)
                    logger.info(
                        "Using %s store (%s)", config.backend.value, type(self._store).__name__
                    )
                if self._validator is None:
                    self._validator = build_validation_service()
                self._repos = build_repositories(
                    self._store,
                    self._validator,
                    auto_migrate=config.auto_migrate,
                    strict=config.strict,
                )
            return self._repos


_DEFAULT = AdapterRegistry()


def default_registry() -> AdapterRegistry:
    """The process-wide adapter registry."""
    return _DEFAULT
