"""Unit tests for storage key helpers."""

from __future__ import annotations

import pytest

from huntkeeper.interfaces.document_store import (
    REGISTRY_KEY,
    InvalidSlugError,
    organization_key,
    slug_from_key,
)


def test_organization_key():
    assert organization_key("acme") == "orgs/acme.json"
    assert organization_key("north-star-2") == "orgs/north-star-2.json"


@pytest.mark.parametrize(
    "slug", ["", "Acme", "-acme", "acme/../x", "acme.json", "a" * 64, "acme corp"]
)
def test_organization_key_rejects_invalid_slugs(slug):
    with pytest.raises(InvalidSlugError) as excinfo:
        organization_key(slug)
    assert excinfo.value.slug == slug


def test_slug_from_key():
    assert slug_from_key(organization_key("acme")) == "acme"
    assert slug_from_key(REGISTRY_KEY) is None
    assert slug_from_key("orgs/acme.txt") is None
