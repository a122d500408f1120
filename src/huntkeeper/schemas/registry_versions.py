"""Schema history of the registry document.

Versions
- ``0.9.0``: legacy flat layout (``appName``, ``orgs[]`` with ``slug``/``name``/
  ``contactEmail``/``huntCount`` and a ``dateIndex`` keyed by ``huntId``).
- ``1.0.0``: ``metadata``, ``featureFlags``, ``organizations[]`` and ``byDate``.
- ``1.1.0``: adds ``privacy`` and photo-only ``limits``.
- ``1.2.0`` (current): video uploads; ``maxPhotosPerTeam`` becomes
  ``maxMediaPerTeam`` and the default size limit grows to 200 MB.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from huntkeeper.domain.models import (
    CURRENT_SCHEMA_VERSION,
    DateIndexEntry,
    DocumentModel,
    IsoDate,
    OrganizationSummary,
    RegistryDocument,
    RegistryMetadata,
    RegistryPrivacy,
)

from .migrations import Migration, MigrationEngine
from .versions import SchemaVersion, SchemaVersionRegistry

DATA_TYPE = "registry"  # pragma: no mutate

LEGACY_VERSION = "0.9.0"  # pragma: no mutate

PHOTO_MEDIA_TYPES = ["image/jpeg", "image/png", "image/gif"]
VIDEO_MEDIA_TYPES = ["video/mp4", "video/quicktime", "video/webm"]
VIDEO_UPLOAD_SIZE_MB = 200


# ============================================================================
#                           Historical shapes
# ============================================================================


class RegistryDocumentV100(DocumentModel):
    """Registry document as written by 1.0.0."""

    schema_version: Literal["1.0.0"]
    metadata: RegistryMetadata
    feature_flags: dict[str, bool] = Field(default_factory=dict)
    organizations: list[OrganizationSummary] = Field(default_factory=list)
    by_date: dict[IsoDate, list[DateIndexEntry]] = Field(default_factory=dict)


class _LimitsV110(DocumentModel):
    max_upload_size_mb: int = Field(gt=0, alias="maxUploadSizeMB")
    max_photos_per_team: int = Field(gt=0)
    allowed_media_types: list[str]


class RegistryDocumentV110(RegistryDocumentV100):
    """Registry document as written by 1.1.0."""

    schema_version: Literal["1.1.0"]  # type: ignore[assignment]
    privacy: RegistryPrivacy
    limits: _LimitsV110


# ============================================================================
#                           Migrations
# ============================================================================


def _legacy_summary(raw: dict[str, Any]) -> dict[str, Any]:
    summary = {
        "orgSlug": raw.get("orgSlug") or raw.get("slug"),
        "orgName": raw.get("orgName") or raw.get("name"),
        "primaryContactEmail": raw.get("primaryContactEmail") or raw.get("contactEmail"),
        "createdAt": raw.get("createdAt"),
        "huntsTotal": int(raw.get("huntsTotal") or raw.get("huntCount") or 0),
        "commonTeams": list(raw.get("commonTeams") or []),
    }
    return {k: v for k, v in summary.items() if v is not None}


def restructure_legacy_registry(doc: dict[str, Any]) -> dict[str, Any]:
    """0.9.0 -> 1.0.0: ``appName``/``orgs``/``dateIndex`` to the nested layout."""
    by_date: dict[str, list[dict[str, str]]] = {}
    for day, entries in (doc.get("dateIndex") or doc.get("byDate") or {}).items():
        bucket = by_date.setdefault(str(day)[:10], [])
        for entry in entries or []:
            pointer = {
                "orgSlug": entry.get("orgSlug") or entry.get("slug"),
                "eventId": str(entry.get("eventId") or entry.get("huntId")),
            }
            if pointer not in bucket:
                bucket.append(pointer)

    metadata = dict(doc.get("metadata") or {})
    metadata.setdefault("name", doc.get("appName") or "huntkeeper")
    metadata.setdefault("environment", doc.get("environment") or "production")

    return {
        "schemaVersion": "1.0.0",
        "metadata": metadata,
        "featureFlags": dict(doc.get("featureFlags") or {}),
        "organizations": [
            _legacy_summary(o) for o in doc.get("orgs") or doc.get("organizations") or []
        ],
        "byDate": {day: entries for day, entries in by_date.items() if entries},
    }


def add_privacy_and_limits(doc: dict[str, Any]) -> dict[str, Any]:
    """1.0.0 -> 1.1.0: ``privacy`` and photo ``limits`` defaults."""
    doc["privacy"] = {"mediaRetentionDays": 365, **(doc.get("privacy") or {})}
    doc["limits"] = {
        "maxUploadSizeMB": 10,
        "maxPhotosPerTeam": 100,
        "allowedMediaTypes": list(PHOTO_MEDIA_TYPES),
        **(doc.get("limits") or {}),
    }
    doc["schemaVersion"] = "1.1.0"
    return doc


def enable_video_uploads(doc: dict[str, Any]) -> dict[str, Any]:
    """1.1.0 -> 1.2.0: video media types and the media-per-team limit."""
    limits = dict(doc.get("limits") or {})
    allowed = list(limits.get("allowedMediaTypes") or PHOTO_MEDIA_TYPES)
    allowed.extend(t for t in VIDEO_MEDIA_TYPES if t not in allowed)
    doc["limits"] = {
        "maxUploadSizeMB": max(int(limits.get("maxUploadSizeMB") or 0), VIDEO_UPLOAD_SIZE_MB),
        "maxMediaPerTeam": limits.get("maxMediaPerTeam") or limits.get("maxPhotosPerTeam") or 100,
        "allowedMediaTypes": allowed,
    }
    doc["schemaVersion"] = "1.2.0"
    return doc


MIGRATIONS = (
    Migration(
        "0.9.0",
        "1.0.0",
        "Nest legacy appName/orgs/dateIndex",
        restructure_legacy_registry,
        validate=RegistryDocumentV100,
    ),
    Migration(
        "1.0.0",
        "1.1.0",
        "Add privacy{} and limits{} defaults",
        add_privacy_and_limits,
        validate=RegistryDocumentV110,
    ),
    Migration(
        "1.1.0",
        "1.2.0",
        "Enable video uploads",
        enable_video_uploads,
        validate=RegistryDocument,
    ),
)


def detect_version(doc: dict[str, Any]) -> str:
    """Best guess for an untagged registry document."""
    return CURRENT_SCHEMA_VERSION if "organizations" in doc else LEGACY_VERSION


def register(versions: SchemaVersionRegistry, engine: MigrationEngine) -> None:
    """Declare every registry schema version and its migrations."""
    versions.register(
        DATA_TYPE, SchemaVersion("0.9.0", None, "Legacy flat layout", deprecated=True)
    )
    versions.register(
        DATA_TYPE,
        SchemaVersion("1.0.0", RegistryDocumentV100, "Nested layout", deprecated=True),
    )
    versions.register(
        DATA_TYPE, SchemaVersion("1.1.0", RegistryDocumentV110, "Privacy and limits")
    )
    versions.register(
        DATA_TYPE, SchemaVersion(CURRENT_SCHEMA_VERSION, RegistryDocument, "Video uploads")
    )
    for migration in MIGRATIONS:
        engine.register(DATA_TYPE, migration)
