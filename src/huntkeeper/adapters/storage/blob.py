"""Local filesystem object store (blob backend).

Each document is one JSON object under a root directory, at the path given
by its key (``registry.json``, ``orgs/{slug}.json``), mirroring the layout of
an object-storage container.

Key behaviors
-------------
- **Etags**: the quoted SHA-256 of the stored bytes, as object stores report
  them. Documents are serialized canonically (sorted keys), so equal payloads
  have equal etags.
- **Atomic placement**: bytes go to a temporary file in the target directory
  and are moved into place with ``os.replace``; readers never see a partial
  object.
- **Conditional writes**: the etag comparison and the replace run under a
  per-key lock, which makes compare-and-swap atomic within one process.
  Several processes sharing one root are not coordinated.
- **Errors**: ``OSError`` and undecodable objects surface as
  ``BackendUnavailableError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from huntkeeper.interfaces.document_store import DocumentStore, StoredDocument
from huntkeeper.interfaces.errors import (
    BackendUnavailableError,
    ConcurrencyConflictError,
)

__all__ = ["LocalObjectStore"]

logger = logging.getLogger(__name__)


def _encode(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")


def _etag(data: bytes) -> str:
    return f'"{hashlib.sha256(data).hexdigest()}"'


class LocalObjectStore(DocumentStore):
    """``DocumentStore`` keeping one JSON object per key under ``root``."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def root(self) -> Path:
        return self._root

    # ---------------------------------------------------------------------- #
    # Interface implementation
    # ---------------------------------------------------------------------- #

    def read(self, key: str) -> StoredDocument | None:
        path = self._path(key)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise BackendUnavailableError(f"Cannot read {key}: {e}") from e
        try:
            payload = json.loads(data)
        except ValueError as e:
            raise BackendUnavailableError(f"Object {key} is not valid JSON: {e}") from e
        return StoredDocument(key=key, payload=payload, etag=_etag(data))

    def write(
        self, key: str, payload: dict[str, Any], expected_etag: str | None = None
    ) -> str:
        path = self._path(key)
        data = _encode(payload)
        with self._lock_for(key):
            if expected_etag is not None:
                actual = self._current_etag(path)
                if actual != expected_etag:
                    raise ConcurrencyConflictError(key, expected_etag, actual)
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with tempfile.NamedTemporaryFile(dir=path.parent, delete=False, suffix=".tmp") as tmp:  # pragma: no mutate # fmt: skip # pylint:disable=line-too-long
                    tmp_path = Path(tmp.name)
                    tmp.write(data)
                    tmp.flush()
                    os.fsync(tmp.fileno())
                os.replace(tmp_path, path)
            except OSError as e:
                raise BackendUnavailableError(f"Cannot write {key}: {e}") from e
        etag = _etag(data)
        logger.debug("Stored %s (%d bytes, etag %s)", key, len(data), etag)
        return etag

    def list_keys(self, prefix: str = "") -> list[str]:
        try:
            keys = [
                p.relative_to(self._root).as_posix()
                for p in self._root.rglob("*.json")
                if p.is_file()
            ]
        except OSError as e:
            raise BackendUnavailableError(f"Cannot list {self._root}: {e}") from e
        return sorted(k for k in keys if k.startswith(prefix))

    # ---------------------------------------------------------------------- #
    # Internal helpers
    # ---------------------------------------------------------------------- #

    def _path(self, key: str) -> Path:
        """Resolve ``key`` below the root, refusing keys that escape it."""
        if not key or key.startswith("/") or "\\" in key or ".." in key.split("/"):
            raise ValueError(f"Invalid object key: {key!r}")
        return self._root / key

    def _lock_for(self, key: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(key, threading.Lock())

    @staticmethod
    def _current_etag(path: Path) -> str | None:
        try:
            return _etag(path.read_bytes())
        except FileNotFoundError:
            return None
        except OSError as e:
            raise BackendUnavailableError(f"Cannot read {path.name}: {e}") from e
