"""Unit tests for ``SchemaVersionRegistry``."""

from __future__ import annotations

import pytest

from huntkeeper.domain.models import OrganizationDocument
from huntkeeper.schemas import (
    ORGANIZATION,
    MigrationConfigError,
    SchemaVersion,
    SchemaVersionRegistry,
    UnknownSchemaVersionError,
)


@pytest.fixture
def versions() -> SchemaVersionRegistry:
    registry = SchemaVersionRegistry()
    registry.register("thing", SchemaVersion("1.10.0", OrganizationDocument))
    registry.register("thing", SchemaVersion("1.2.0", None, deprecated=True))
    return registry


def test_versions_are_ordered_numerically(versions):
    assert versions.versions("thing") == ["1.2.0", "1.10.0"]
    assert versions.latest("thing") == "1.10.0"
    assert versions.oldest("thing") == "1.2.0"


def test_duplicate_declaration_is_rejected(versions):
    with pytest.raises(MigrationConfigError):
        versions.register("thing", SchemaVersion("1.2.0", None))


def test_unknown_lookups(versions):
    assert not versions.is_known("thing", "9.9.9")
    assert not versions.is_deprecated("thing", "9.9.9")
    with pytest.raises(UnknownSchemaVersionError):
        versions.get("thing", "9.9.9")
    with pytest.raises(UnknownSchemaVersionError):
        versions.versions("nothing")


def test_model_lookup(versions):
    assert versions.get_model("thing", "1.10.0") is OrganizationDocument
    with pytest.raises(UnknownSchemaVersionError):
        versions.get_model("thing", "1.2.0")  # declared without a model


def test_production_declarations(validator):
    declared = validator.versions
    assert declared.data_types() == ["organization", "registry"]
    assert declared.versions(ORGANIZATION) == ["0.9.0", "1.0.0", "1.1.0", "1.2.0"]
    assert declared.is_deprecated(ORGANIZATION, "0.9.0")
    assert not declared.is_deprecated(ORGANIZATION, "1.2.0")
