"""Unit tests for ``ValidationService.validate``."""

from __future__ import annotations

import pytest

from huntkeeper.domain.models import OrganizationDocument, RegistryDocument
from huntkeeper.schemas import ORGANIZATION, REGISTRY
from huntkeeper.schemas.validation import ValidationIssue, strip_nulls
from tests.fixtures.documents import event_dict, organization_dict


def _codes(issues: tuple[ValidationIssue, ...]) -> set[str]:
    return {issue.code for issue in issues}


def test_current_document_validates_without_migration(validator):
    result = validator.validate(ORGANIZATION, organization_dict())

    assert result.success
    assert isinstance(result.data, OrganizationDocument)
    assert not result.migration_applied
    assert result.source_version == "1.2.0"
    assert result.errors == ()


def test_model_instance_is_accepted(validator, make_org):
    result = validator.validate(ORGANIZATION, make_org("zeta"))
    assert result.success
    assert result.data.org_slug == "zeta"


def test_non_mapping_is_invalid_document(validator):
    result = validator.validate(ORGANIZATION, ["not", "a", "document"])
    assert not result.success
    assert _codes(result.errors) == {"INVALID_DOCUMENT"}


def test_legacy_document_is_migrated(validator, legacy_organization):
    result = validator.validate(ORGANIZATION, {**legacy_organization, "schemaVersion": "0.9.0"})

    assert result.success
    assert result.migration_applied
    assert result.source_version == "0.9.0"
    assert result.applied_steps == ("0.9.0->1.0.0", "1.0.0->1.1.0", "1.1.0->1.2.0")
    doc = result.data
    assert doc.org.org_slug == "acme"
    assert doc.hunts[0].team_model == "single"
    assert doc.hunts[0].stops[0].requirements[0].media_type == "photo"
    assert "DEPRECATED_VERSION" in _codes(result.warnings)


def test_outdated_document_without_auto_migrate_is_rejected(validator, legacy_registry):
    result = validator.validate(
        REGISTRY, {**legacy_registry, "schemaVersion": "0.9.0"}, auto_migrate=False
    )
    assert not result.success
    assert _codes(result.errors) == {"MIGRATION_REQUIRED"}


def test_unknown_version_is_rejected(validator):
    result = validator.validate(ORGANIZATION, organization_dict(schemaVersion="7.0.0"))
    assert not result.success
    assert _codes(result.errors) == {"UNKNOWN_SCHEMA_VERSION"}
    assert result.source_version == "7.0.0"


def test_missing_version_fails_in_strict_mode(validator):
    doc = organization_dict()
    del doc["schemaVersion"]
    result = validator.validate(ORGANIZATION, doc, strict=True)
    assert not result.success
    assert _codes(result.errors) == {"MISSING_SCHEMA_VERSION"}


def test_missing_version_is_detected_in_lax_mode(validator, legacy_organization):
    current = organization_dict()
    del current["schemaVersion"]

    as_current = validator.validate(ORGANIZATION, current)
    as_legacy = validator.validate(ORGANIZATION, legacy_organization)

    assert as_current.success and not as_current.migration_applied
    assert "MISSING_SCHEMA_VERSION" in _codes(as_current.warnings)
    assert as_legacy.success and as_legacy.source_version == "0.9.0"


def test_failed_migration_reports_partial_steps(validator, legacy_organization):
    legacy_organization.pop("contactEmail")  # no contact at all -> 1.0.0 model rejects
    result = validator.validate(ORGANIZATION, {**legacy_organization, "schemaVersion": "0.9.0"})
    assert not result.success
    assert _codes(result.errors) == {"MIGRATION_FAILED"}
    assert result.applied_steps == ()


def test_structural_errors_carry_paths(validator):
    doc = organization_dict(hunts=[event_dict(slug="Not A Slug")])
    result = validator.validate(ORGANIZATION, doc)
    assert not result.success
    assert any(issue.path.startswith("hunts.0.slug") for issue in result.errors)
    assert "string_pattern_mismatch" in _codes(result.errors)


def test_end_before_start_is_rejected(validator):
    doc = organization_dict(hunts=[event_dict(startDate="2025-07-02", endDate="2025-07-01")])
    assert not validator.validate(ORGANIZATION, doc).success


def test_both_team_models_are_rejected(validator):
    doc = organization_dict(hunts=[event_dict(teamCaptain={"name": "Robin"})])
    assert not validator.validate(ORGANIZATION, doc).success


def test_duplicate_event_ids_are_rejected(validator):
    doc = organization_dict(hunts=[event_dict(), event_dict(slug="other")])
    assert not validator.validate(ORGANIZATION, doc).success


def test_lax_mode_drops_nulls_strict_mode_rejects_them(validator):
    doc = organization_dict(privacy={"mediaRetentionDays": None, "shareGallery": True})

    lax = validator.validate(ORGANIZATION, doc)
    strict = validator.validate(ORGANIZATION, doc, strict=True)

    assert lax.success
    assert lax.data.privacy.media_retention_days == 365
    assert not strict.success


def test_lax_mode_coerces_strict_mode_does_not(validator):
    doc = organization_dict(privacy={"mediaRetentionDays": "30"})
    assert validator.validate(ORGANIZATION, doc).data.privacy.media_retention_days == 30
    assert not validator.validate(ORGANIZATION, doc, strict=True).success


@pytest.mark.parametrize(
    ("doc", "code"),
    [
        pytest.param(
            {k: v for k, v in organization_dict().items() if k != "privacy"},
            "MISSING_PRIVACY_CONFIG",
            id="no-privacy",
        ),
        pytest.param(
            organization_dict(
                hunts=[
                    {
                        k: v
                        for k, v in event_dict(teamCaptain={"name": "Robin"}).items()
                        if k != "teams"
                    }
                ]
            ),
            "LEGACY_TEAM_MODEL",
            id="single-team",
        ),
    ],
)
def test_shape_warnings(validator, doc, code):
    result = validator.validate(ORGANIZATION, doc)
    assert result.success
    assert code in _codes(result.warnings)
    assert validator.validate(ORGANIZATION, doc, include_warnings=False).warnings == ()


def test_validate_only_never_migrates(validator, legacy_registry):
    legacy = {**legacy_registry, "schemaVersion": "0.9.0"}
    assert not validator.validate_only(REGISTRY, legacy).success
    assert validator.validate_only(REGISTRY, RegistryDocument().to_document()).success


def test_strip_nulls_is_recursive():
    assert strip_nulls({"a": None, "b": {"c": None, "d": [{"e": None, "f": 1}]}}) == {
        "b": {"d": [{"f": 1}]}
    }


def test_issue_str_mentions_code_and_path():
    issue = ValidationIssue("missing", "Field required", path="org.orgName")
    assert str(issue) == "missing at org.orgName: Field required"
