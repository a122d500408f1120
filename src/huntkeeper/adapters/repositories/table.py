"""Repositories for the SQL table backend.

Documents are handled exactly as in ``DocumentRegistryRepo``; the difference
is the date index. Besides the registry's ``byDate`` map, the backend keeps a
dedicated ``event_date_index`` table, and that table answers date queries.
Both are refreshed after organization and event writes, best-effort.
"""

from __future__ import annotations

import logging

from huntkeeper.domain.models import Event, OrganizationDocument
from huntkeeper.interfaces.errors import RepositoryError

from ..storage.table import IndexRow, SqlAlchemyTableStore
from .document import DocumentEventRepo, DocumentRegistryRepo

__all__ = ["TableEventRepo", "TableRegistryRepo"]

logger = logging.getLogger(__name__)


def _index_row(org_slug: str, event: Event) -> IndexRow:
    return IndexRow(
        day=event.start_date,
        org_slug=org_slug,
        event_id=event.id,
        event_name=event.name,
        status=event.status,
    )


class TableRegistryRepo(DocumentRegistryRepo):
    """``DocumentRegistryRepo`` that also maintains ``event_date_index``."""

    store: SqlAlchemyTableStore

    def index_event(self, org_slug: str, event: Event, hunts_total: int) -> None:
        super().index_event(org_slug, event, hunts_total)
        try:
            self.store.put_index_entry(_index_row(org_slug, event))
        except RepositoryError as e:
            logger.warning(
                "Date index row for %s/%s not written: %s", org_slug, event.id, e
            )

    def _sync_organization(self, document: OrganizationDocument) -> None:
        super()._sync_organization(document)
        org_slug = document.org_slug
        try:
            self.store.replace_organization_index(
                org_slug, [_index_row(org_slug, h) for h in document.hunts]
            )
        except RepositoryError as e:
            logger.warning("Date index rows for %s not rebuilt: %s", org_slug, e)


class TableEventRepo(DocumentEventRepo):
    """``DocumentEventRepo`` reading date listings from ``event_date_index``."""

    registry: TableRegistryRepo

    def _index_entries(self, day: str) -> list[IndexRow]:  # type: ignore[override]
        return self.registry.store.index_entries(day)
