"""``EventRepo`` behaviour shared by every backend."""

from __future__ import annotations

import logging

import pytest

from huntkeeper.domain.models import DateIndexEntry
from huntkeeper.interfaces.document_store import organization_key
from huntkeeper.interfaces.errors import (
    ConcurrencyConflictError,
    NotFoundError,
    ValidationFailedError,
)
from huntkeeper.interfaces.event_repo import EventFilter
from tests.fixtures.documents import event_dict

# pylint: disable=redefined-outer-name


@pytest.fixture
def acme(registry_repo, make_org) -> str:
    """Store organization ``acme`` with event ``e1`` on 2025-07-01; return its etag."""
    return registry_repo.upsert_organization("acme", make_org("acme"))


def test_get_event(event_repo, acme):
    event = event_repo.get_event("acme", "e1")
    assert event.name == "Summer Hunt"


def test_get_missing_event(event_repo, acme):
    with pytest.raises(NotFoundError) as excinfo:
        event_repo.get_event("acme", "nope")
    assert excinfo.value.key == "acme/nope"

    with pytest.raises(NotFoundError):
        event_repo.get_event("ghost", "e1")


def test_upsert_new_event(event_repo, registry_repo, acme, make_event):
    stored = event_repo.upsert_event(
        "acme", make_event(id="e2", slug="fall-hunt", startDate="2025-10-01", endDate="2025-10-02")
    )

    assert stored.document.id == "e2"
    assert stored.etag == registry_repo.get_organization("acme").etag
    assert [e.event_id for e in event_repo.list_events_for_date("2025-10-01")] == ["e2"]
    assert registry_repo.get_registry().document.find_organization("acme").hunts_total == 2


def test_upsert_accepts_camel_case_mapping(event_repo, acme):
    stored = event_repo.upsert_event("acme", event_dict(id="e3", startDate="2025-07-01"))
    assert stored.document.start_date == "2025-07-01"
    assert {e.event_id for e in event_repo.list_events_for_date("2025-07-01")} == {"e1", "e3"}


def test_upsert_rejects_invalid_mapping(event_repo, acme):
    with pytest.raises(ValidationFailedError) as excinfo:
        event_repo.upsert_event("acme", event_dict(id="e3", startDate="tomorrow"))
    assert excinfo.value.key == "acme/e3"


def test_upsert_event_into_missing_organization(event_repo, make_event):
    with pytest.raises(NotFoundError):
        event_repo.upsert_event("ghost", make_event())


def test_list_events_for_date(event_repo, registry_repo, acme, make_org):
    registry_repo.upsert_organization(
        "zeta", make_org("zeta", hunts=[event_dict(id="z1", access={"visibility": "private"})])
    )

    listed = event_repo.list_events_for_date("2025-07-01")

    assert {(e.org_slug, e.event_id) for e in listed} == {("acme", "e1"), ("zeta", "z1")}
    assert event_repo.list_events_for_date("2030-01-01") == []
    only_public = event_repo.list_events_for_date(
        "2025-07-01", EventFilter(visibility="public")
    )
    assert [(e.org_slug, e.org_name) for e in only_public] == [("acme", "Acme Adventures")]


@pytest.mark.parametrize("day", ["2025-7-1", "20250701", "2025-02-30", "soon"])
def test_list_events_rejects_malformed_dates(event_repo, day):
    with pytest.raises(ValueError):
        event_repo.list_events_for_date(day)


def test_moving_an_event_moves_its_index_entry(event_repo, acme, make_event):
    event_repo.upsert_event("acme", make_event(startDate="2025-08-01", endDate="2025-08-01"))

    assert event_repo.list_events_for_date("2025-07-01") == []
    assert [e.event_id for e in event_repo.list_events_for_date("2025-08-01")] == ["e1"]


def test_stale_index_entries_are_skipped(event_repo, registry_repo, acme, caplog):
    # move the event behind the index's back
    key = organization_key("acme")
    raw = registry_repo.store.read(key).payload
    raw["hunts"][0]["startDate"] = raw["hunts"][0]["endDate"] = "2025-09-09"
    registry_repo.store.write(key, raw)

    with caplog.at_level(logging.WARNING):
        assert event_repo.list_events_for_date("2025-07-01") == []
    assert "stale date index entry" in caplog.text


def test_entries_of_removed_organizations_are_skipped(event_repo, registry_repo, acme):
    registry_repo.update_registry(
        lambda registry: registry.model_copy(
            update={
                "by_date": {
                    **registry.by_date,
                    "2025-07-01": [
                        *registry.by_date["2025-07-01"],
                        DateIndexEntry(org_slug="ghost", event_id="g1"),
                    ],
                }
            }
        )
    )
    assert [e.org_slug for e in event_repo.list_events_for_date("2025-07-01")] == ["acme"]


def test_upsert_with_expected_etag(event_repo, acme, make_event):
    stored = event_repo.upsert_event("acme", make_event(name="Renamed"), expected_etag=acme)
    assert stored.document.name == "Renamed"
    assert stored.etag != acme


def test_second_writer_from_same_etag_conflicts(event_repo, registry_repo, acme, make_event):
    """Two writers read the organization at the same etag; only the first lands."""
    event_repo.upsert_event("acme", make_event(name="First writer"), expected_etag=acme)

    with pytest.raises(ConcurrencyConflictError):
        event_repo.upsert_event("acme", make_event(name="Second writer"), expected_etag=acme)

    assert registry_repo.get_organization("acme").document.hunts[0].name == "First writer"


def test_listing_is_ordered_by_organization_name(event_repo, registry_repo, make_org):
    def named(slug: str, name: str):
        doc = make_org(slug)
        return doc.model_copy(update={"org": doc.org.model_copy(update={"org_name": name})})

    # slug order and write order both disagree with name order
    registry_repo.upsert_organization("aaa", named("aaa", "zeta Hunts"))
    registry_repo.upsert_organization("zzz", named("zzz", "Bravo Trails"))
    registry_repo.upsert_organization("mmm", named("mmm", "Acme Adventures"))

    listed = event_repo.list_events_for_date("2025-07-01")

    assert [e.org_name for e in listed] == ["Acme Adventures", "Bravo Trails", "zeta Hunts"]


def test_invalid_organization_does_not_hide_the_others(
    event_repo, registry_repo, acme, make_org, caplog
):
    registry_repo.upsert_organization("zeta", make_org("zeta", hunts=[event_dict(id="z1")]))
    registry_repo.store.write(
        organization_key("acme"), {"schemaVersion": "1.2.0", "org": {"orgSlug": "acme"}}
    )

    with caplog.at_level(logging.WARNING):
        listed = event_repo.list_events_for_date("2025-07-01")

    assert [(e.org_slug, e.event_id) for e in listed] == [("zeta", "z1")]
    assert "Skipping orgs/acme.json in the 2025-07-01 listing" in caplog.text


def test_reupserting_unchanged_event_leaves_registry_alone(
    event_repo, registry_repo, acme, make_event
):
    before = registry_repo.get_registry().etag

    event_repo.upsert_event("acme", make_event())

    assert registry_repo.get_registry().etag == before
    assert [e.event_id for e in event_repo.list_events_for_date("2025-07-01")] == ["e1"]
