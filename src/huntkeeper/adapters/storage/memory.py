"""In-memory document store.

A process-local map for tests and local development. It reproduces the
conflict semantics of the durable backends so tests exercise the same code
paths as production.

Key behaviors
-------------
- **Etags**: ``"etag-<n>"`` from a store-wide counter, starting at
  ``etag-1`` for the first write. A new etag is issued on every write.
- **Isolation**: payloads are deep-copied on the way in and out; callers can
  never mutate stored state through a returned dict.
- **Thread-safety**: every operation runs under one ``RLock``, so the etag
  comparison and the write of a conditional write are atomic.
- **Durability**: none; data is lost when the process exits.
"""

from __future__ import annotations

import copy
import itertools
import threading
from typing import Any

from huntkeeper.interfaces.document_store import DocumentStore, StoredDocument
from huntkeeper.interfaces.errors import ConcurrencyConflictError

__all__ = ["MemoryDocumentStore"]


class MemoryDocumentStore(DocumentStore):
    """``DocumentStore`` backed by a dict guarded by a re-entrant lock."""

    def __init__(self) -> None:
        self._docs: dict[str, tuple[dict[str, Any], str]] = {}
        self._counter = itertools.count(1)
        self._lock = threading.RLock()

    # ---------------------------------------------------------------------- #
    # Interface implementation
    # ---------------------------------------------------------------------- #

    def read(self, key: str) -> StoredDocument | None:
        with self._lock:
            entry = self._docs.get(key)
            if entry is None:
                return None
            payload, etag = entry
            return StoredDocument(key=key, payload=copy.deepcopy(payload), etag=etag)

    def write(
        self, key: str, payload: dict[str, Any], expected_etag: str | None = None
    ) -> str:
        stored = copy.deepcopy(payload)
        with self._lock:
            if expected_etag is not None:
                current = self._docs.get(key)
                actual = current[1] if current is not None else None
                if actual != expected_etag:
                    raise ConcurrencyConflictError(key, expected_etag, actual)
            etag = f"etag-{next(self._counter)}"
            self._docs[key] = (stored, etag)
            return etag

    def list_keys(self, prefix: str = "") -> list[str]:
        with self._lock:
            return sorted(k for k in self._docs if k.startswith(prefix))
