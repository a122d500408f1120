"""Property-based checks for the ``byDate`` helpers."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from huntkeeper.domain import date_index
from huntkeeper.domain.models import DateIndexEntry

pytestmark = pytest.mark.property

days = st.sampled_from(["2025-07-01", "2025-07-02", "2025-08-15", "2026-01-01"])
slugs = st.sampled_from(["acme", "zeta", "north-star"])
event_ids = st.sampled_from(["e1", "e2", "e3"])
entries = st.builds(DateIndexEntry, org_slug=slugs, event_id=event_ids)
indexes = st.dictionaries(days, st.lists(entries, max_size=4), max_size=4)


def _locations(index, org_slug, event_id):
    return [
        day
        for day, bucket in index.items()
        for e in bucket
        if e.org_slug == org_slug and e.event_id == event_id
    ]


@given(indexes, slugs, event_ids, days)
def test_moved_entry_lives_on_exactly_one_date(index, org_slug, event_id, day):
    moved, _ = date_index.move_entry(index, org_slug, event_id, day)
    assert _locations(moved, org_slug, event_id) == [day]
    assert all(moved.values())


@given(indexes, slugs, event_ids, days)
def test_move_is_idempotent(index, org_slug, event_id, day):
    once, _ = date_index.move_entry(index, org_slug, event_id, day)
    twice, changed = date_index.move_entry(once, org_slug, event_id, day)
    assert not changed
    assert twice == once


@given(indexes, slugs, event_ids, days)
def test_move_leaves_other_events_alone(index, org_slug, event_id, day):
    moved, _ = date_index.move_entry(index, org_slug, event_id, day)
    target = DateIndexEntry(org_slug=org_slug, event_id=event_id)
    for other_day, bucket in index.items():
        for entry in bucket:
            if entry != target:
                assert entry in moved.get(other_day, [])


@given(indexes, slugs, st.dictionaries(event_ids, days, max_size=3))
def test_sync_organization_matches_events(index, org_slug, events):
    synced, _ = date_index.sync_organization(index, org_slug, events.items())
    for event_id in ["e1", "e2", "e3"]:
        expected = [events[event_id]] if event_id in events else []
        assert _locations(synced, org_slug, event_id) == expected
