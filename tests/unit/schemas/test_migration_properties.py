"""Property-based checks for the organization migration chain."""

from __future__ import annotations

import copy
from datetime import date

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from huntkeeper.schemas import ORGANIZATION

pytestmark = pytest.mark.property

legacy_hunts = st.fixed_dictionaries(
    {
        "huntId": st.from_regex(r"[a-z0-9]{1,8}", fullmatch=True),
        "title": st.text(min_size=1, max_size=30),
        "date": st.dates(date(2000, 1, 1), date(2099, 12, 31)).map(date.isoformat),
        "status": st.sampled_from(["upcoming", "live", "ended", "archived", "weird"]),
        "photoCount": st.integers(0, 500),
    },
    optional={
        "captainName": st.text(min_size=1, max_size=10),
        "members": st.lists(st.text(min_size=1, max_size=10), max_size=3),
        "joinCode": st.from_regex(r"[A-Z0-9]{4,6}", fullmatch=True),
    },
)

legacy_organizations = st.fixed_dictionaries(
    {
        "orgSlug": st.from_regex(r"[a-z0-9][a-z0-9-]{0,20}", fullmatch=True),
        "orgName": st.text(min_size=1, max_size=30),
        "contactEmail": st.sampled_from(["a@acme.com", "ops@hunts.org"]),
        "hunts": st.lists(legacy_hunts, max_size=4, unique_by=lambda h: h["huntId"]),
    }
)


@settings(max_examples=50, deadline=None)
@given(legacy_organizations)
def test_legacy_documents_reach_current_version(validator, legacy):
    snapshot = copy.deepcopy(legacy)

    result = validator.validate(ORGANIZATION, legacy)

    assert result.success, result.errors
    assert result.applied_steps == ("0.9.0->1.0.0", "1.0.0->1.1.0", "1.1.0->1.2.0")
    assert legacy == snapshot
    document = result.data
    assert document.org.org_slug == legacy["orgSlug"]
    assert [h.id for h in document.hunts] == [h["huntId"] for h in legacy["hunts"]]


@settings(max_examples=50, deadline=None)
@given(legacy_organizations)
def test_migrated_documents_are_stable(validator, legacy):
    migrated = validator.validate(ORGANIZATION, legacy).data

    again = validator.validate(ORGANIZATION, migrated.to_document())

    assert again.success
    assert not again.migration_applied
    assert again.data == migrated
