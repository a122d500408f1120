"""Schema history of the organization document.

Versions
- ``0.9.0``: legacy flat layout. Organization fields sit at the top level
  (``orgSlug``/``slug``, ``orgName``/``name``, ``contactEmail``, ``contact`` or
  ``contacts``) and hunts use the old field names (``huntId``, ``title``,
  ``date``, ``pointsPerStop``, ``captainName``, ``uploadCount``...).
- ``1.0.0``: organization fields nested under ``org``, hunts normalized to the
  event layout with flat upload counters.
- ``1.1.0``: adds the ``privacy`` block and moves upload counters under
  ``uploads.summary``.
- ``1.2.0`` (current): stop requirements carry ``mediaType``, events gain the
  ``uploads.media`` list and the ``draft`` status.
"""

from __future__ import annotations

import re
from typing import Any, Literal

from pydantic import Field

from huntkeeper.domain.models import (
    CURRENT_SCHEMA_VERSION,
    DEFAULT_TEAMS,
    DocumentModel,
    IsoDate,
    OrganizationDocument,
    OrganizationPrivacy,
    OrganizationProfile,
    Slug,
    UploadSummary,
)

from .migrations import Migration, MigrationEngine
from .versions import SchemaVersion, SchemaVersionRegistry

DATA_TYPE = "organization"  # pragma: no mutate

LEGACY_VERSION = "0.9.0"  # pragma: no mutate

_LEGACY_STATUS = {
    "upcoming": "scheduled",
    "planned": "scheduled",
    "live": "active",
    "running": "active",
    "ended": "completed",
    "finished": "completed",
    "past": "completed",
}
_V1_STATUSES = {"scheduled", "active", "completed", "archived"}
_VISIBILITIES = {"public", "invite", "private"}


# ============================================================================
#                           Historical shapes
# ============================================================================


class _EventV100(DocumentModel):
    id: str = Field(min_length=1)
    slug: Slug
    name: str = Field(min_length=1)
    start_date: IsoDate
    end_date: IsoDate
    status: Literal["scheduled", "active", "completed", "archived"]


class OrganizationDocumentV100(DocumentModel):
    """Organization document as written by 1.0.0."""

    schema_version: Literal["1.0.0"]
    org: OrganizationProfile
    hunts: list[_EventV100] = Field(default_factory=list)


class _UploadsV110(DocumentModel):
    summary: UploadSummary


class _EventV110(_EventV100):
    uploads: _UploadsV110


class OrganizationDocumentV110(DocumentModel):
    """Organization document as written by 1.1.0."""

    schema_version: Literal["1.1.0"]
    org: OrganizationProfile
    privacy: OrganizationPrivacy
    hunts: list[_EventV110] = Field(default_factory=list)


# ============================================================================
#                           Helpers
# ============================================================================


def _slugify(text: str, fallback: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")[:63].rstrip("-")
    return slug or fallback


def _first(raw: dict[str, Any], *names: str, default: Any = None) -> Any:
    """First non-empty value among ``names`` (legacy field aliases)."""
    for name in names:
        value = raw.get(name)
        if value not in (None, ""):
            return value
    return default


def _drop_none(values: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


def _legacy_contact(raw: dict[str, Any]) -> dict[str, Any]:
    first_name = raw.get("firstName")
    last_name = raw.get("lastName")
    if not (first_name or last_name) and (full := raw.get("name")):
        first_name, _, last_name = str(full).partition(" ")
    return _drop_none(
        {
            "firstName": first_name or "Unknown",
            "lastName": last_name or "Contact",
            "email": raw.get("email"),
            "phone": raw.get("phone"),
            "role": raw.get("role"),
        }
    )


def _legacy_contacts(doc: dict[str, Any]) -> list[dict[str, Any]]:
    if isinstance(contacts := doc.get("contacts"), list) and contacts:
        return [_legacy_contact(c) for c in contacts if isinstance(c, dict)]
    if isinstance(contact := doc.get("contact"), dict):
        return [_legacy_contact(contact)]
    if email := doc.get("contactEmail"):
        return [_legacy_contact({"email": email})]
    return []


def _legacy_date(value: Any) -> Any:
    # legacy dates were sometimes full timestamps
    return value[:10] if isinstance(value, str) else value


def _legacy_teams(hunt: dict[str, Any]) -> dict[str, Any]:
    if isinstance(teams := hunt.get("teams"), list) and teams:
        return {
            "teams": [
                {"name": t} if isinstance(t, str) else _drop_none(
                    {
                        "name": t.get("name"),
                        "captain": t.get("captain"),
                        "members": t.get("members"),
                    }
                )
                for t in teams
            ]
        }
    if captain := hunt.get("captainName"):
        return {
            "teamCaptain": _drop_none({"name": captain, "email": hunt.get("captainEmail")}),
            "teamMembers": list(hunt.get("members") or hunt.get("teamMembers") or []),
        }
    return {}


def _legacy_hint(raw: Any) -> dict[str, Any]:
    if isinstance(raw, str):
        return {"text": raw}
    return _drop_none(
        {"text": raw.get("text"), "revealAfterMinutes": raw.get("revealAfterMinutes")}
    )


def _legacy_requirement(raw: Any) -> dict[str, Any]:
    if isinstance(raw, str):
        return {"type": raw}
    return _drop_none({"type": raw.get("type", "photo"), "description": raw.get("description")})


def _legacy_stop(raw: dict[str, Any], index: int) -> dict[str, Any]:
    requirements = raw.get("requirements") or ["photo"]
    return _drop_none(
        {
            "id": str(_first(raw, "stopId", "id", default=f"stop-{index + 1}")),
            "name": _first(raw, "name", "title", default=f"Stop {index + 1}"),
            "latitude": _first(raw, "latitude", "lat"),
            "longitude": _first(raw, "longitude", "lng", "lon"),
            "radiusMeters": _first(raw, "radiusMeters", "radius", default=50),
            "hints": [_legacy_hint(h) for h in raw.get("hints") or []],
            "requirements": [_legacy_requirement(r) for r in requirements],
        }
    )


def _legacy_hunt(raw: dict[str, Any], index: int) -> dict[str, Any]:
    event_id = str(_first(raw, "huntId", "id", default=f"hunt-{index + 1}"))
    name = _first(raw, "title", "name", default=event_id)
    start = _legacy_date(_first(raw, "startDate", "date"))
    status = str(raw.get("status") or "scheduled").lower()
    status = _LEGACY_STATUS.get(status, status)
    visibility = raw.get("visibility")
    if visibility not in _VISIBILITIES:
        visibility = "invite" if raw.get("joinCode") else "public"
    photos = int(raw.get("photoCount") or 0)
    videos = int(raw.get("videoCount") or 0)

    return _drop_none(
        {
            "id": event_id,
            "slug": raw.get("slug") or _slugify(str(name), fallback=f"hunt-{index + 1}"),
            "name": name,
            "startDate": start,
            "endDate": _legacy_date(raw.get("endDate")) or start,
            "status": status if status in _V1_STATUSES else "scheduled",
            "access": _drop_none(
                {
                    "visibility": visibility,
                    "joinCode": raw.get("joinCode"),
                    "pinRequired": bool(raw.get("pinRequired", False)),
                }
            ),
            "scoring": {
                "basePerStop": int(_first(raw, "pointsPerStop", default=10)),
                "bonusCreative": int(_first(raw, "bonusPoints", default=5)),
            },
            "moderation": {
                "required": bool(raw.get("requiresApproval", False)),
                "reviewers": list(raw.get("reviewers") or []),
            },
            **_legacy_teams(raw),
            "stops": [_legacy_stop(s, i) for i, s in enumerate(raw.get("stops") or [])],
            "uploads": _drop_none(
                {
                    "total": int(raw.get("uploadCount") or photos + videos),
                    "photos": photos,
                    "videos": videos,
                    "lastUploadedAt": raw.get("lastUpload"),
                }
            ),
            "audit": _drop_none(
                {
                    "createdBy": _first(
                        raw, "createdBy", "captainEmail", default="legacy-import"
                    ),
                    "createdAt": raw.get("createdAt"),
                }
            ),
        }
    )


# ============================================================================
#                           Migrations
# ============================================================================


def nest_legacy_organization(doc: dict[str, Any]) -> dict[str, Any]:
    """0.9.0 -> 1.0.0: wrap flat organization fields into ``org``."""
    org_block = doc.get("org") if isinstance(doc.get("org"), dict) else {}
    settings = dict(org_block.get("settings") or doc.get("settings") or {})
    settings.setdefault("defaultTeams", list(doc.get("defaultTeams") or DEFAULT_TEAMS))
    settings.setdefault("timezone", doc.get("timezone") or "UTC")
    settings.setdefault("locale", doc.get("locale") or "en-US")

    return {
        "schemaVersion": "1.0.0",
        "org": {
            "orgSlug": str(
                _first(org_block, "orgSlug", default=None)
                or _first(doc, "orgSlug", "slug", default="")
            ).strip().lower(),
            "orgName": _first(org_block, "orgName") or _first(doc, "orgName", "name"),
            "contacts": _legacy_contacts(org_block) or _legacy_contacts(doc),
            "settings": settings,
        },
        "hunts": [
            _legacy_hunt(h, i)
            for i, h in enumerate(doc.get("hunts") or [])
            if isinstance(h, dict)
        ],
    }


def add_privacy_and_upload_summary(doc: dict[str, Any]) -> dict[str, Any]:
    """1.0.0 -> 1.1.0: add ``privacy`` defaults, nest upload counters."""
    doc["privacy"] = {"mediaRetentionDays": 365, "shareGallery": False, **(doc.get("privacy") or {})}
    for hunt in doc.get("hunts", []):
        uploads = hunt.get("uploads") or {}
        if "summary" not in uploads:
            hunt["uploads"] = {
                "summary": _drop_none(
                    {
                        "total": uploads.get("total", 0),
                        "photos": uploads.get("photos", 0),
                        "videos": uploads.get("videos", 0),
                        "lastUploadedAt": uploads.get("lastUploadedAt"),
                    }
                )
            }
    doc["schemaVersion"] = "1.1.0"
    return doc


def add_media_types(doc: dict[str, Any]) -> dict[str, Any]:
    """1.1.0 -> 1.2.0: typed stop requirements and the ``uploads.media`` list."""
    for hunt in doc.get("hunts", []):
        for stop in hunt.get("stops", []):
            stop["requirements"] = [
                _drop_none(
                    {
                        "mediaType": r.get("mediaType") or r.get("type") or "photo",
                        "description": r.get("description"),
                    }
                )
                for r in stop.get("requirements") or [{"type": "photo"}]
            ]
        hunt.setdefault("uploads", {}).setdefault("media", [])
    doc["schemaVersion"] = "1.2.0"
    return doc


MIGRATIONS = (
    Migration(
        "0.9.0",
        "1.0.0",
        "Wrap legacy flat organization fields into org{}",
        nest_legacy_organization,
        validate=OrganizationDocumentV100,
    ),
    Migration(
        "1.0.0",
        "1.1.0",
        "Add privacy{} defaults and uploads.summary",
        add_privacy_and_upload_summary,
        validate=OrganizationDocumentV110,
    ),
    Migration(
        "1.1.0",
        "1.2.0",
        "Typed stop requirements and uploads.media",
        add_media_types,
        validate=OrganizationDocument,
    ),
)


def detect_version(doc: dict[str, Any]) -> str:
    """Best guess for an untagged organization document."""
    return CURRENT_SCHEMA_VERSION if isinstance(doc.get("org"), dict) else LEGACY_VERSION


def register(versions: SchemaVersionRegistry, engine: MigrationEngine) -> None:
    """Declare every organization schema version and its migrations."""
    versions.register(
        DATA_TYPE,
        SchemaVersion("0.9.0", None, "Legacy flat layout", deprecated=True),
    )
    versions.register(
        DATA_TYPE,
        SchemaVersion("1.0.0", OrganizationDocumentV100, "Nested org block", deprecated=True),
    )
    versions.register(
        DATA_TYPE,
        SchemaVersion("1.1.0", OrganizationDocumentV110, "Privacy and upload summary"),
    )
    versions.register(
        DATA_TYPE,
        SchemaVersion(CURRENT_SCHEMA_VERSION, OrganizationDocument, "Typed media"),
    )
    for migration in MIGRATIONS:
        engine.register(DATA_TYPE, migration)
