"""Unit tests for ``AdapterRegistry``."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from huntkeeper.adapters.repositories import DocumentRegistryRepo
from huntkeeper.adapters.storage import LocalObjectStore, MemoryDocumentStore
from huntkeeper.bootstrap import AdapterRegistry, build_store
from huntkeeper.config import BackendKind, StoreConfig

# pylint: disable=redefined-outer-name

MEMORY = StoreConfig(backend=BackendKind.MEMORY)


@pytest.fixture
def built() -> list[StoreConfig]:
    return []


@pytest.fixture
def adapters(built: list[StoreConfig]) -> AdapterRegistry:
    def factory(config: StoreConfig) -> MemoryDocumentStore:
        built.append(config)
        return MemoryDocumentStore()

    return AdapterRegistry(MEMORY, store_factory=factory)


def test_repositories_are_cached(adapters, built):
    registry_repo = adapters.get_registry_repo()
    assert isinstance(registry_repo, DocumentRegistryRepo)
    assert adapters.get_registry_repo() is registry_repo
    assert adapters.get_event_repo() is adapters.get_event_repo()
    assert len(built) == 1


def test_event_and_registry_repos_share_a_store(adapters):
    registry_repo = adapters.get_registry_repo()
    assert adapters.get_event_repo().registry is registry_repo


def test_new_flags_keep_store_but_rebuild_repos(adapters, built):
    first = adapters.get_registry_repo()
    adapters.configure(StoreConfig(backend=BackendKind.MEMORY, strict=True))

    second = adapters.get_registry_repo()

    assert second is not first
    assert second.store is first.store
    assert len(built) == 1


def test_new_selection_rebuilds_everything(adapters, built, tmp_path):
    first = adapters.get_registry_repo()
    adapters.configure(StoreConfig(blob_root=tmp_path))

    second = adapters.get_registry_repo()

    assert second.store is not first.store
    assert [c.backend for c in built] == [BackendKind.MEMORY, BackendKind.BLOB]
    # instances handed out earlier keep working
    assert first.get_registry().etag is None


def test_reset_reads_environment_again(adapters, monkeypatch, tmp_path):
    monkeypatch.setenv("HUNTKEEPER_BACKEND", "blob")
    monkeypatch.setenv("HUNTKEEPER_BLOB_ROOT", str(tmp_path))

    adapters.reset()

    assert adapters.config.backend is BackendKind.BLOB
    assert adapters.config.blob_root == tmp_path


def test_concurrent_first_use_builds_one_store(adapters, built):
    barrier = threading.Barrier(8)

    def get():
        barrier.wait()
        return adapters.get_registry_repo()

    with ThreadPoolExecutor(max_workers=8) as pool:
        repos = list(pool.map(lambda _: get(), range(8)))

    assert len(built) == 1
    assert all(repo is repos[0] for repo in repos)


def test_build_store_per_backend(tmp_path):
    assert isinstance(build_store(MEMORY), MemoryDocumentStore)
    blob = build_store(StoreConfig(blob_root=tmp_path))
    assert isinstance(blob, LocalObjectStore)
