"""Event repository port.

Events are embedded in organization documents; the concurrency token of an
event is the etag of the organization document that holds it. Date listings
go through a date index that is a best-effort secondary structure: entries
pointing at missing or moved events are skipped, never fatal.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass

from huntkeeper.domain.models import Event, EventStatus, EventSummary, Visibility

from .registry_repo import Versioned


@dataclass(frozen=True, slots=True)
class EventFilter:
    """Optional filters for ``EventRepo.list_events_for_date``."""

    org_slug: str | None = None
    statuses: frozenset[EventStatus] | None = None
    visibility: Visibility | None = None

    def matches(self, summary: EventSummary) -> bool:
        if self.org_slug is not None and summary.org_slug != self.org_slug:
            return False
        if self.statuses is not None and summary.status not in self.statuses:
            return False
        if self.visibility is not None and summary.visibility != self.visibility:
            return False
        return True


class EventRepo(abc.ABC):
    """Port over events embedded in organization documents."""

    @abc.abstractmethod
    def list_events_for_date(
        self, day: str, filter_: EventFilter | None = None
    ) -> list[EventSummary]:
        """Return events starting on ``day`` (``YYYY-MM-DD``).

        Results are ordered by organization name. Stale index entries
        (organization or event gone, or start date moved) are skipped and
        logged, and so are the events of an organization whose stored
        document is invalid.

        Raises:
            ValueError: ``day`` is not a ``YYYY-MM-DD`` date.
            BackendUnavailableError: On transient backend failures.
        """

    @abc.abstractmethod
    def get_event(self, org_slug: str, event_id: str) -> Event:
        """Return one event.

        Raises:
            NotFoundError: The organization or the event does not exist.
            ValidationFailedError: The organization document is invalid.
        """

    @abc.abstractmethod
    def upsert_event(
        self, org_slug: str, event: Event, expected_etag: str | None = None
    ) -> Versioned[Event]:
        """Create or replace ``event`` inside its organization document.

        Args:
            org_slug: Organization holding the event.
            event: The full event (``id`` identifies it within the organization).
            expected_etag: Etag of the organization document the caller read;
                when omitted the etag read internally guards the write.

        Returns:
            Versioned[Event]: the stored event and the organization's new etag.

        Raises:
            NotFoundError: The organization does not exist.
            ValidationFailedError: The event or the resulting document is invalid.
            ConcurrencyConflictError: ``expected_etag`` is stale.
            BackendUnavailableError: On transient backend failures.
        """
