"""Repositories over any ``DocumentStore``.

``DocumentRegistryRepo`` and ``DocumentEventRepo`` implement the two ports
once, for every backend: the backend only supplies raw reads and conditional
writes. Shared behaviour lives here:

Reads
- The stored payload goes through ``ValidationService.validate`` (auto-migrating
  when enabled). An irrecoverably invalid document raises
  ``ValidationFailedError`` carrying the raw stored payload.
- When a version transform ran, ``_write_back`` tries to persist the migrated
  form with the etag just read. A conflict or backend failure is logged and
  the migrated document is still returned.

Writes
- The caller's document is validated before the conditional write, and
  ``updatedAt`` is stamped.
- Organization writes then refresh the registry (summary, date index) with a
  bounded read-modify-write loop. Registry and organization are separate
  documents: if that refresh fails the organization write stands and the
  failure is logged.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from datetime import date
from typing import Any, TypeVar, cast

from pydantic import ValidationError

from huntkeeper.domain import date_index
from huntkeeper.domain.models import (
    DATE_PATTERN,
    DocumentModel,
    Event,
    EventSummary,
    OrganizationDocument,
    OrganizationSummary,
    RegistryDocument,
    skeleton_registry,
    utc_timestamp,
)
from huntkeeper.interfaces.document_store import (
    REGISTRY_KEY,
    DocumentStore,
    InvalidSlugError,
    organization_key,
)
from huntkeeper.interfaces.errors import (
    BackendUnavailableError,
    ConcurrencyConflictError,
    NotFoundError,
    RepositoryError,
    ValidationFailedError,
)
from huntkeeper.interfaces.event_repo import EventFilter, EventRepo
from huntkeeper.interfaces.registry_repo import (
    OrganizationFilter,
    RegistryMutation,
    RegistryRepo,
    Versioned,
)
from huntkeeper.schemas import ORGANIZATION, REGISTRY, ValidationIssue, ValidationService
from huntkeeper.schemas.validation import issues_from_error

__all__ = ["INDEX_UPDATE_ATTEMPTS", "DocumentEventRepo", "DocumentRegistryRepo"]

logger = logging.getLogger(__name__)

INDEX_UPDATE_ATTEMPTS = 3  # pragma: no mutate

M = TypeVar("M", bound=DocumentModel)


def _as_model(data: object, model: type[M]) -> M:
    if not isinstance(data, model):  # pragma: no cover
        raise TypeError(f"Expected {model.__name__}, got {type(data).__name__}")
    return data


def _summary_for(
    document: OrganizationDocument, existing: OrganizationSummary | None
) -> OrganizationSummary:
    org = document.org
    return OrganizationSummary(
        org_slug=org.org_slug,
        org_name=org.org_name,
        primary_contact_email=org.contacts[0].email,
        created_at=(existing.created_at if existing else None) or utc_timestamp(),
        hunts_total=len(document.hunts),
        common_teams=list(org.settings.default_teams),
    )


def _with_summary(
    summaries: list[OrganizationSummary], summary: OrganizationSummary
) -> tuple[list[OrganizationSummary], bool]:
    for index, existing in enumerate(summaries):
        if existing.org_slug == summary.org_slug:
            if existing == summary:
                return summaries, False
            return [*summaries[:index], summary, *summaries[index + 1 :]], True
    return [*summaries, summary], True


class DocumentRegistryRepo(RegistryRepo):
    """``RegistryRepo`` over a ``DocumentStore``."""

    def __init__(
        self,
        store: DocumentStore,
        validator: ValidationService,
        *,
        auto_migrate: bool = True,
        strict: bool = False,
    ) -> None:
        self.store = store
        self.validator = validator
        self.auto_migrate = auto_migrate
        self.strict = strict

    # --------------------------------------------------------------------- #
    # Interface implementation
    # --------------------------------------------------------------------- #

    def get_registry(self) -> Versioned[RegistryDocument]:
        loaded = self._load(REGISTRY, REGISTRY_KEY, RegistryDocument)
        if loaded is None:
            return Versioned(skeleton_registry(), None)
        return loaded

    def list_organizations(
        self, filter_: OrganizationFilter | None = None
    ) -> list[OrganizationSummary]:
        summaries = list(self.get_registry().document.organizations)
        return (filter_ or OrganizationFilter()).apply(summaries)

    def get_organization(self, org_slug: str) -> Versioned[OrganizationDocument]:
        try:
            key = organization_key(org_slug)
        except InvalidSlugError as e:
            raise NotFoundError("organization", org_slug) from e
        loaded = self._load(ORGANIZATION, key, OrganizationDocument)
        if loaded is None:
            raise NotFoundError("organization", org_slug)
        return loaded

    def upsert_organization(
        self,
        org_slug: str,
        document: OrganizationDocument,
        expected_etag: str | None = None,
    ) -> str:
        stored = self.store_organization(org_slug, document, expected_etag)
        self._sync_organization(stored.document)
        return cast(str, stored.etag)

    def upsert_registry(
        self, document: RegistryDocument, expected_etag: str | None = None
    ) -> str:
        stored = self._save(REGISTRY, REGISTRY_KEY, document, expected_etag, RegistryDocument)
        return cast(str, stored.etag)

    def update_registry(self, mutate: RegistryMutation) -> str | None:
        for attempt in range(1, INDEX_UPDATE_ATTEMPTS + 1):
            current = self.get_registry()
            updated = mutate(current.document)
            if updated is None:
                return None
            try:
                return self.upsert_registry(updated, expected_etag=current.etag)
            except ConcurrencyConflictError:
                if attempt == INDEX_UPDATE_ATTEMPTS:
                    raise
                logger.debug(
                    "Registry changed underneath update (attempt %d/%d); retrying",
                    attempt,
                    INDEX_UPDATE_ATTEMPTS,
                )
        return None  # pragma: no cover

    # --------------------------------------------------------------------- #
    # Building blocks shared with the event repository
    # --------------------------------------------------------------------- #

    def store_organization(
        self,
        org_slug: str,
        document: OrganizationDocument,
        expected_etag: str | None = None,
    ) -> Versioned[OrganizationDocument]:
        """Validate and write an organization document without touching the registry."""
        try:
            key = organization_key(org_slug)
        except InvalidSlugError as e:
            raise ValidationFailedError(
                ORGANIZATION,
                org_slug,
                [ValidationIssue("INVALID_ORG_SLUG", str(e), path="org.orgSlug")],
            ) from e
        if document.org.org_slug != org_slug:
            raise ValidationFailedError(
                ORGANIZATION,
                key,
                [
                    ValidationIssue(
                        "SLUG_MISMATCH",
                        f"document belongs to {document.org.org_slug!r}, not {org_slug!r}",
                        path="org.orgSlug",
                    )
                ],
            )
        return self._save(ORGANIZATION, key, document, expected_etag, OrganizationDocument)

    def index_event(self, org_slug: str, event: Event, hunts_total: int) -> None:
        """Point the date index at ``event``'s start date and refresh the summary count.

        Best-effort: the event is already stored, so failures are logged.
        """

        def mutate(registry: RegistryDocument) -> RegistryDocument | None:
            by_date, moved = date_index.move_entry(
                registry.by_date, org_slug, event.id, event.start_date
            )
            organizations, counted = registry.organizations, False
            if (summary := registry.find_organization(org_slug)) is not None:
                organizations, counted = _with_summary(
                    organizations, summary.model_copy(update={"hunts_total": hunts_total})
                )
            if not (moved or counted):
                return None
            return registry.model_copy(
                update={"by_date": by_date, "organizations": organizations}
            )

        self._update_registry_best_effort(f"index {org_slug}/{event.id}", mutate)

    # --------------------------------------------------------------------- #
    # Internals
    # --------------------------------------------------------------------- #

    def _sync_organization(self, document: OrganizationDocument) -> None:
        """Refresh the organization's summary and every date index entry it owns."""
        org_slug = document.org_slug

        def mutate(registry: RegistryDocument) -> RegistryDocument | None:
            organizations, summary_changed = _with_summary(
                registry.organizations,
                _summary_for(document, registry.find_organization(org_slug)),
            )
            by_date, index_changed = date_index.sync_organization(
                registry.by_date, org_slug, [(h.id, h.start_date) for h in document.hunts]
            )
            if not (summary_changed or index_changed):
                return None
            return registry.model_copy(
                update={"organizations": organizations, "by_date": by_date}
            )

        self._update_registry_best_effort(f"sync {org_slug}", mutate)

    def _update_registry_best_effort(self, what: str, mutate: RegistryMutation) -> None:
        try:
            self.update_registry(mutate)
        except RepositoryError as e:
            logger.warning(
                "Registry update (%s) failed; the date index may be stale: %s", what, e
            )

    def _load(self, data_type: str, key: str, model: type[M]) -> Versioned[M] | None:
        """Read, validate and (when migrated) write back one document."""
        stored = self.store.read(key)
        if stored is None:
            return None

        result = self.validator.validate(
            data_type, stored.payload, auto_migrate=self.auto_migrate, strict=self.strict
        )
        if not result.success:
            logger.error("Stored %s is invalid: %s", key, "; ".join(map(str, result.errors)))
            raise ValidationFailedError(
                data_type,
                key,
                result.errors,
                raw_document=stored.payload,
                applied_steps=result.applied_steps,
            )
        for warning in result.warnings:
            logger.debug("%s: %s", key, warning)

        document = _as_model(result.data, model)
        etag = stored.etag
        if result.migration_applied:
            etag = self._write_back(key, document, stored.etag, result.applied_steps)
        return Versioned(document, etag)

    def _write_back(
        self, key: str, document: DocumentModel, etag: str, steps: tuple[str, ...]
    ) -> str:
        """Persist a migrated document read at ``etag``; never raises for conflicts."""
        try:
            new_etag = self.store.write(key, document.to_document(), expected_etag=etag)
        except (ConcurrencyConflictError, BackendUnavailableError) as e:
            logger.warning(
                "Write-back of migrated %s failed; serving the migrated copy: %s", key, e
            )
            return etag
        logger.info("Wrote back %s after migration (%s)", key, ", ".join(steps))
        return new_etag

    def _save(
        self,
        data_type: str,
        key: str,
        document: M,
        expected_etag: str | None,
        model: type[M],
    ) -> Versioned[M]:
        """Validate ``document``, stamp ``updatedAt`` and write it conditionally."""
        candidate = document.to_document()
        candidate["updatedAt"] = utc_timestamp()
        result = self.validator.validate(
            data_type,
            candidate,
            auto_migrate=self.auto_migrate,
            strict=self.strict,
            include_warnings=False,
        )
        if not result.success:
            raise ValidationFailedError(
                data_type, key, result.errors, applied_steps=result.applied_steps
            )
        validated = _as_model(result.data, model)
        etag = self.store.write(key, validated.to_document(), expected_etag)
        return Versioned(validated, etag)


class DocumentEventRepo(EventRepo):
    """``EventRepo`` over the organization documents of a ``DocumentRegistryRepo``."""

    def __init__(self, registry: DocumentRegistryRepo) -> None:
        self.registry = registry

    # --------------------------------------------------------------------- #
    # Interface implementation
    # --------------------------------------------------------------------- #

    def list_events_for_date(
        self, day: str, filter_: EventFilter | None = None
    ) -> list[EventSummary]:
        if not re.fullmatch(DATE_PATTERN, day):
            raise ValueError(f"Expected a YYYY-MM-DD date, got {day!r}")
        date.fromisoformat(day)
        organizations: dict[str, OrganizationDocument | None] = {}
        unreadable: set[str] = set()
        summaries: list[EventSummary] = []

        for entry in self._index_entries(day):
            if entry.org_slug not in organizations:
                try:
                    organizations[entry.org_slug] = self.registry.get_organization(
                        entry.org_slug
                    ).document
                except NotFoundError:
                    organizations[entry.org_slug] = None
                except ValidationFailedError as e:
                    logger.warning("Skipping %s in the %s listing: %s", e.key, day, e)
                    organizations[entry.org_slug] = None
                    unreadable.add(entry.org_slug)
            if entry.org_slug in unreadable:
                continue
            org = organizations[entry.org_slug]
            event = org.find_event(entry.event_id) if org is not None else None
            if org is None or event is None or event.start_date != day:
                logger.warning(
                    "Skipping stale date index entry %s -> %s/%s",
                    day,
                    entry.org_slug,
                    entry.event_id,
                )
                continue
            summary = EventSummary.from_event(org.org, event)
            if filter_ is None or filter_.matches(summary):
                summaries.append(summary)
        summaries.sort(key=lambda s: s.org_name.casefold())
        return summaries

    def get_event(self, org_slug: str, event_id: str) -> Event:
        org = self.registry.get_organization(org_slug).document
        if (event := org.find_event(event_id)) is None:
            raise NotFoundError("event", f"{org_slug}/{event_id}")
        return event

    def upsert_event(
        self,
        org_slug: str,
        event: Event | Mapping[str, Any],
        expected_etag: str | None = None,
    ) -> Versioned[Event]:
        event = self._coerce_event(org_slug, event)
        current = self.registry.get_organization(org_slug)
        if expected_etag is not None and expected_etag != current.etag:
            raise ConcurrencyConflictError(
                organization_key(org_slug), expected_etag, current.etag
            )

        org = current.document
        if org.find_event(event.id) is not None:
            hunts = [event if h.id == event.id else h for h in org.hunts]
        else:
            hunts = [*org.hunts, event]

        stored = self.registry.store_organization(
            org_slug, org.model_copy(update={"hunts": hunts}), current.etag
        )
        saved = cast(Event, stored.document.find_event(event.id))
        self.registry.index_event(org_slug, saved, len(stored.document.hunts))
        return Versioned(saved, stored.etag)

    # --------------------------------------------------------------------- #
    # Internals
    # --------------------------------------------------------------------- #

    def _index_entries(self, day: str) -> list[date_index.DateIndexEntry]:
        """Date index entries for ``day``; the registry's ``byDate`` by default."""
        return date_index.entries_for(self.registry.get_registry().document.by_date, day)

    @staticmethod
    def _coerce_event(org_slug: str, event: Event | Mapping[str, Any]) -> Event:
        if isinstance(event, Event):
            return event
        try:
            return Event.model_validate(event)
        except ValidationError as e:
            raise ValidationFailedError(
                "event", f"{org_slug}/{event.get('id', '?')}", issues_from_error(e)
            ) from e
