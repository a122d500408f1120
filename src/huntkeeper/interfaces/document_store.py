"""Document store port: raw JSON documents addressed by key, guarded by etags.

This is the narrow contract every storage backend implements. Repositories
(``huntkeeper.adapters.repositories``) layer validation, migration and the
date index on top of it.

Contract overview
-----------------
Keys:
- ``registry.json`` for the registry; ``orgs/{orgSlug}.json`` per organization.
  Keys are derived purely from the slug (``organization_key``).

Read:
- ``read(key)`` returns ``StoredDocument(key, payload, etag)`` or None when
  the key does not exist. ``payload`` is a fresh dict the caller may keep.

Write:
- ``write(key, payload, expected_etag=None)`` stores the whole document and
  returns its new etag.
- With ``expected_etag`` the write is conditional: when the stored etag
  differs (or the key does not exist) ``ConcurrencyConflictError`` is raised
  and nothing is written. The check and the write are atomic per key.
- Without ``expected_etag`` the write is unconditional (create or replace).
- Transient failures raise ``BackendUnavailableError``.

Etags are opaque strings; equality is the only meaningful operation.
"""

from __future__ import annotations

import abc
import re
from dataclasses import dataclass
from typing import Any

from huntkeeper.domain.models import SLUG_PATTERN

REGISTRY_KEY = "registry.json"  # pragma: no mutate
ORGANIZATION_PREFIX = "orgs/"  # pragma: no mutate
_ORGANIZATION_SUFFIX = ".json"  # pragma: no mutate

_SLUG_RE = re.compile(SLUG_PATTERN)


class InvalidSlugError(ValueError):
    """Raised when an organization slug cannot be turned into a storage key."""

    def __init__(self, slug: str) -> None:
        super().__init__(f"Invalid organization slug: {slug!r}")
        self.slug = slug


def organization_key(org_slug: str) -> str:
    """Storage key of an organization document.

    Raises:
        InvalidSlugError: If ``org_slug`` is not a lowercase slug.
    """
    if not _SLUG_RE.fullmatch(org_slug or "") or len(org_slug) > 63:
        raise InvalidSlugError(org_slug)
    return f"{ORGANIZATION_PREFIX}{org_slug}{_ORGANIZATION_SUFFIX}"


def slug_from_key(key: str) -> str | None:
    """Inverse of ``organization_key``; None for keys that are not organizations."""
    if key.startswith(ORGANIZATION_PREFIX) and key.endswith(_ORGANIZATION_SUFFIX):
        return key[len(ORGANIZATION_PREFIX) : -len(_ORGANIZATION_SUFFIX)]
    return None


@dataclass(frozen=True, slots=True)
class StoredDocument:
    """A raw document as read from a backend, with its concurrency token."""

    key: str
    payload: dict[str, Any]
    etag: str


class DocumentStore(abc.ABC):
    """Port for whole-document reads and (conditional) writes."""

    @abc.abstractmethod
    def read(self, key: str) -> StoredDocument | None:
        """Return the document stored at ``key``, or None when absent.

        Raises:
            BackendUnavailableError: On transient backend failures.
        """

    @abc.abstractmethod
    def write(
        self, key: str, payload: dict[str, Any], expected_etag: str | None = None
    ) -> str:
        """Store ``payload`` at ``key`` and return the new etag.

        Args:
            key: Storage key.
            payload: JSON-compatible document.
            expected_etag: When set, write only if the stored etag matches.

        Returns:
            str: The etag of the stored document.

        Raises:
            ConcurrencyConflictError: ``expected_etag`` is stale or the key is absent.
            BackendUnavailableError: On transient backend failures.
        """

    @abc.abstractmethod
    def list_keys(self, prefix: str = "") -> list[str]:
        """Return every stored key starting with ``prefix``, sorted."""

    def list_organization_slugs(self) -> list[str]:
        """Slugs of every stored organization document."""
        return [
            slug
            for key in self.list_keys(ORGANIZATION_PREFIX)
            if (slug := slug_from_key(key)) is not None
        ]
