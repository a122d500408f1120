"""Registry repository port.

The registry port owns the deployment-wide registry document and gives
access to organization documents. Every read validates (and, when enabled,
migrates) the stored document; every write validates the caller's document
before the conditional write reaches the backend.

Concurrency
- Reads return ``Versioned(document, etag)``. Pass the etag back as
  ``expected_etag`` to make the write conditional.
- A stale etag raises ``ConcurrencyConflictError``; the core never retries a
  caller's write. Re-read, re-apply and retry in the calling layer.
"""

from __future__ import annotations

import abc
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from huntkeeper.domain.models import (
    OrganizationDocument,
    OrganizationSummary,
    RegistryDocument,
)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Versioned(Generic[T]):
    """A document together with the etag it was read or written at.

    ``etag`` is None only for a registry skeleton that has never been stored.
    """

    document: T
    etag: str | None


@dataclass(frozen=True, slots=True)
class OrganizationFilter:
    """Filter for ``RegistryRepo.list_organizations``.

    ``name_contains`` matches ``orgName`` or ``orgSlug``, case-insensitively.
    """

    name_contains: str | None = None
    offset: int = 0
    limit: int | None = None

    def __post_init__(self) -> None:
        if self.offset < 0:
            raise ValueError("offset must be >= 0")
        if self.limit is not None and self.limit < 0:
            raise ValueError("limit must be >= 0")

    def apply(self, summaries: list[OrganizationSummary]) -> list[OrganizationSummary]:
        if self.name_contains:
            needle = self.name_contains.casefold()
            summaries = [
                s
                for s in summaries
                if needle in s.org_name.casefold() or needle in s.org_slug
            ]
        end = None if self.limit is None else self.offset + self.limit
        return summaries[self.offset : end]


RegistryMutation = Callable[[RegistryDocument], RegistryDocument | None]


class RegistryRepo(abc.ABC):
    """Port over the registry document and the organization documents."""

    @abc.abstractmethod
    def get_registry(self) -> Versioned[RegistryDocument]:
        """Return the registry, or a default skeleton (etag None) when absent.

        Raises:
            ValidationFailedError: The stored registry is irrecoverably invalid.
            BackendUnavailableError: On transient backend failures.
        """

    @abc.abstractmethod
    def list_organizations(
        self, filter_: OrganizationFilter | None = None
    ) -> list[OrganizationSummary]:
        """Return organization summaries from the registry, optionally filtered."""

    @abc.abstractmethod
    def get_organization(self, org_slug: str) -> Versioned[OrganizationDocument]:
        """Return one organization document.

        Raises:
            NotFoundError: No document is stored for ``org_slug``.
            ValidationFailedError: The stored document is irrecoverably invalid.
            BackendUnavailableError: On transient backend failures.
        """

    @abc.abstractmethod
    def upsert_organization(
        self,
        org_slug: str,
        document: OrganizationDocument,
        expected_etag: str | None = None,
    ) -> str:
        """Create or replace an organization document; return its new etag.

        The registry's summary and date index for the organization are
        refreshed afterwards on a best-effort basis.

        Raises:
            ValidationFailedError: ``document`` is invalid or its slug differs
                from ``org_slug``.
            ConcurrencyConflictError: ``expected_etag`` is stale.
            BackendUnavailableError: On transient backend failures.
        """

    @abc.abstractmethod
    def upsert_registry(
        self, document: RegistryDocument, expected_etag: str | None = None
    ) -> str:
        """Create or replace the registry document; return its new etag.

        Raises:
            ValidationFailedError: ``document`` is invalid.
            ConcurrencyConflictError: ``expected_etag`` is stale.
            BackendUnavailableError: On transient backend failures.
        """

    @abc.abstractmethod
    def update_registry(self, mutate: RegistryMutation) -> str | None:
        """Apply ``mutate`` to the freshest registry and store the result.

        ``mutate`` receives the current registry and returns the new one, or
        None when nothing needs to change (no write happens, None is returned).
        On a conflict the registry is re-read and ``mutate`` applied again, a
        bounded number of times.

        Raises:
            ConcurrencyConflictError: Conflicts persisted after every attempt.
            ValidationFailedError: The mutated registry is invalid.
            BackendUnavailableError: On transient backend failures.
        """
