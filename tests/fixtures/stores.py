"""Backend-parametrized store and repository fixtures.

Provided fixtures
-----------------
- **store**: a fresh ``DocumentStore`` per test for each backend:
  ``"memory"``, ``"blob"`` (temp directory) and ``"table"`` (Alembic-migrated
  SQLite file).
- **registry_repo** / **event_repo**: the repositories ``build_repositories``
  wires on top of ``store``.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from huntkeeper.adapters.storage import (
    LocalObjectStore,
    MemoryDocumentStore,
    SqlAlchemyTableStore,
)
from huntkeeper.bootstrap import build_repositories

if TYPE_CHECKING:
    from huntkeeper.adapters.repositories import DocumentEventRepo, DocumentRegistryRepo
    from huntkeeper.interfaces.document_store import DocumentStore
    from huntkeeper.schemas import ValidationService

# pylint: disable=redefined-outer-name

BACKENDS = ["memory", "blob", "table"]


@pytest.fixture(params=BACKENDS)
def store(request: pytest.FixtureRequest, tmp_path: Path) -> DocumentStore:
    """Return a fresh document store for the requested backend."""
    match request.param:
        case "memory":
            return MemoryDocumentStore()
        case "blob":
            return LocalObjectStore(tmp_path / "blobs")
        case "table":
            return SqlAlchemyTableStore(request.getfixturevalue("sqlite_engine_file"))
        case _:
            raise ValueError(f"unknown store type: {request.param}")


@pytest.fixture
def repositories(
    store: DocumentStore, validator: ValidationService
) -> tuple[DocumentRegistryRepo, DocumentEventRepo]:
    return build_repositories(store, validator)


@pytest.fixture
def registry_repo(
    repositories: tuple[DocumentRegistryRepo, DocumentEventRepo],
) -> DocumentRegistryRepo:
    return repositories[0]


@pytest.fixture
def event_repo(
    repositories: tuple[DocumentRegistryRepo, DocumentEventRepo],
) -> DocumentEventRepo:
    return repositories[1]
