"""Pure helpers maintaining the registry's ``byDate`` secondary index.

The index maps a calendar date (``YYYY-MM-DD``) to the events starting on it,
as ``DateIndexEntry(org_slug, event_id)`` pointers. It lives in the registry
document while the events live in organization documents, so it can go stale;
consumers treat entries as hints.

Every helper here takes an index mapping and returns a new one (inputs are
never mutated) together with whether anything changed, so callers can skip
a registry write when the index is already correct.

Rules:
    - An ``(org_slug, event_id)`` pair appears at most once per date.
    - Moving an event removes it from every other date.
    - Empty date buckets are dropped.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping

from huntkeeper.domain.models import DateIndexEntry

DateIndex = dict[str, list[DateIndexEntry]]


def _copy(by_date: Mapping[str, list[DateIndexEntry]]) -> DateIndex:
    return {day: list(entries) for day, entries in by_date.items()}


def _without(
    by_date: DateIndex, predicate: Callable[[str, DateIndexEntry], bool]
) -> tuple[DateIndex, bool]:
    changed = False
    result: DateIndex = {}
    for day, entries in by_date.items():
        kept = [e for e in entries if not predicate(day, e)]
        # an empty bucket is dropped too, which counts as a change
        changed = changed or len(kept) != len(entries) or not entries
        if kept:
            result[day] = kept
    return result, changed


def _place(
    by_date: Mapping[str, list[DateIndexEntry]],
    wanted: Mapping[DateIndexEntry, str],
    owns: Callable[[DateIndexEntry], bool],
) -> tuple[DateIndex, bool]:
    # entries matching ``owns`` survive only once, on their wanted date
    placed: set[DateIndexEntry] = set()

    def misplaced(day: str, entry: DateIndexEntry) -> bool:
        if not owns(entry):
            return False
        if wanted.get(entry) != day or entry in placed:
            return True
        placed.add(entry)
        return False

    result, changed = _without(_copy(by_date), misplaced)
    for entry, day in wanted.items():
        if entry not in placed:
            result.setdefault(day, []).append(entry)
            changed = True
    return result, changed


def entries_for(
    by_date: Mapping[str, list[DateIndexEntry]], day: str
) -> list[DateIndexEntry]:
    """Return the entries recorded for ``day`` (empty list when none)."""
    return list(by_date.get(day, []))


def move_entry(
    by_date: Mapping[str, list[DateIndexEntry]],
    org_slug: str,
    event_id: str,
    new_date: str | None,
) -> tuple[DateIndex, bool]:
    """Place ``(org_slug, event_id)`` under ``new_date`` only.

    The pair is removed from every other date (so a stale ``old date`` does
    not need to be known exactly) and kept once under ``new_date``. Passing
    ``new_date=None`` removes the pair entirely.

    Args:
        by_date: Current index.
        org_slug: Organization owning the event.
        event_id: Event identifier within the organization.
        new_date: Date the event now starts on, or None to drop it.

    Returns:
        The new index and whether it differs from the input.
    """
    target = DateIndexEntry(org_slug=org_slug, event_id=event_id)
    wanted = {} if new_date is None else {target: new_date}
    return _place(by_date, wanted, lambda entry: entry == target)


def sync_organization(
    by_date: Mapping[str, list[DateIndexEntry]],
    org_slug: str,
    events: Iterable[tuple[str, str]],
) -> tuple[DateIndex, bool]:
    """Make the index reflect exactly ``events`` for one organization.

    Args:
        by_date: Current index.
        org_slug: Organization whose entries are rebuilt.
        events: ``(event_id, start_date)`` pairs currently in the organization
            document.

    Returns:
        The new index and whether it differs from the input.
    """
    wanted = {
        DateIndexEntry(org_slug=org_slug, event_id=event_id): day
        for event_id, day in events
    }
    return _place(by_date, wanted, lambda entry: entry.org_slug == org_slug)
