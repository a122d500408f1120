"""Current (latest schema version) shapes of the stored documents.

Two top-level document types exist:

- ``RegistryDocument``: the deployment-wide singleton holding organization
  summaries, limits, feature flags and the ``byDate`` secondary index.
- ``OrganizationDocument``: one per organization, keyed by ``orgSlug``, holding
  the organization profile and its embedded events ("hunts").

Models expose snake_case attributes but read and write the camelCase JSON
layout used in storage. Use ``to_document()`` to obtain the storable form.

Historical shapes live next to their migrations in ``huntkeeper.schemas``;
this module only knows about the current one.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Annotated, Any, Literal

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    model_validator,
)
from pydantic.alias_generators import to_camel

CURRENT_SCHEMA_VERSION = "1.2.0"  # pragma: no mutate

SLUG_PATTERN = r"^[a-z0-9][a-z0-9-]*$"
DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"

DEFAULT_TEAMS = ("RED", "GREEN", "BLUE", "YELLOW", "ORANGE")
DEFAULT_MEDIA_TYPES = (
    "image/jpeg",
    "image/png",
    "image/gif",
    "video/mp4",
    "video/quicktime",
    "video/webm",
)

EventStatus = Literal["draft", "scheduled", "active", "completed", "archived"]
Visibility = Literal["public", "invite", "private"]
MediaKind = Literal["photo", "video"]


def _check_calendar_date(value: str) -> str:
    date.fromisoformat(value)
    return value


Slug = Annotated[str, StringConstraints(pattern=SLUG_PATTERN, max_length=63)]
IsoDate = Annotated[
    str, StringConstraints(pattern=DATE_PATTERN), AfterValidator(_check_calendar_date)
]


def utc_timestamp() -> str:
    """Return the current UTC time as an ISO-8601 string with a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


class DocumentModel(BaseModel):
    """Base for every stored shape: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    def to_document(self) -> dict[str, Any]:
        """Return the JSON-compatible, camelCase form used in storage."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ============================================================================
#                           Organization document
# ============================================================================


class Contact(DocumentModel):
    """A person reachable on behalf of an organization."""

    first_name: str = "Unknown"
    last_name: str = "Contact"
    email: EmailStr
    phone: str | None = None
    role: str | None = None


class OrganizationSettings(DocumentModel):
    """Defaults applied to new events of an organization."""

    default_teams: list[str] = Field(default_factory=lambda: list(DEFAULT_TEAMS))
    timezone: str = "UTC"
    locale: str = "en-US"


class OrganizationProfile(DocumentModel):
    """The ``org`` block of an organization document."""

    org_slug: Slug
    org_name: str = Field(min_length=1)
    contacts: list[Contact] = Field(min_length=1)
    settings: OrganizationSettings = Field(default_factory=OrganizationSettings)


class OrganizationPrivacy(DocumentModel):
    media_retention_days: int = Field(default=365, ge=0)
    share_gallery: bool = False


class Access(DocumentModel):
    visibility: Visibility = "public"
    join_code: str | None = None
    pin_required: bool = False


class Scoring(DocumentModel):
    base_per_stop: int = Field(default=10, ge=0)
    bonus_creative: int = Field(default=5, ge=0)


class Moderation(DocumentModel):
    required: bool = False
    reviewers: list[str] = Field(default_factory=list)


class Team(DocumentModel):
    """One team of the multi-team model."""

    name: str = Field(min_length=1)
    captain: str | None = None
    members: list[str] = Field(default_factory=list)


class TeamCaptain(DocumentModel):
    """Captain of the single-team model."""

    name: str = Field(min_length=1)
    email: EmailStr | None = None


class Hint(DocumentModel):
    text: str = Field(min_length=1)
    reveal_after_minutes: int | None = Field(default=None, ge=0)


class StopRequirement(DocumentModel):
    media_type: MediaKind = "photo"
    description: str | None = None


class Stop(DocumentModel):
    """A location participants must reach, with optional hints."""

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    radius_meters: int = Field(default=50, gt=0)
    hints: list[Hint] = Field(default_factory=list)
    requirements: list[StopRequirement] = Field(
        default_factory=lambda: [StopRequirement()]
    )


class UploadSummary(DocumentModel):
    total: int = Field(default=0, ge=0)
    photos: int = Field(default=0, ge=0)
    videos: int = Field(default=0, ge=0)
    last_uploaded_at: str | None = None


class MediaRecord(DocumentModel):
    """Asset reference handed over by the media service; stored verbatim."""

    model_config = ConfigDict(extra="allow")

    url: str
    public_id: str
    media_type: str
    uploaded_at: str


class Uploads(DocumentModel):
    summary: UploadSummary = Field(default_factory=UploadSummary)
    media: list[MediaRecord] = Field(default_factory=list)


class Audit(DocumentModel):
    created_by: str = "system"
    created_at: str | None = None


class Event(DocumentModel):
    """A scavenger hunt embedded in an organization document.

    Teams follow one of two models: the multi-team ``teams`` list, or the
    single-team ``team_captain`` + ``team_members`` pair. A document may carry
    either, never both; ``team_model`` tells which one is in use.
    """

    id: str = Field(min_length=1)
    slug: Slug
    name: str = Field(min_length=1)
    start_date: IsoDate
    end_date: IsoDate
    status: EventStatus = "draft"
    access: Access = Field(default_factory=Access)
    scoring: Scoring = Field(default_factory=Scoring)
    moderation: Moderation = Field(default_factory=Moderation)
    teams: list[Team] | None = None
    team_captain: TeamCaptain | None = None
    team_members: list[str] | None = None
    stops: list[Stop] = Field(default_factory=list)
    uploads: Uploads = Field(default_factory=Uploads)
    audit: Audit = Field(default_factory=Audit)

    @model_validator(mode="after")
    def check_dates_and_team_model(self) -> Event:
        if self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        if self.teams is not None and (
            self.team_captain is not None or self.team_members is not None
        ):
            raise ValueError(
                "an event uses either teams or teamCaptain/teamMembers, not both"
            )
        return self

    @property
    def team_model(self) -> Literal["multi", "single"] | None:
        """Which team model the event uses, if any."""
        if self.teams is not None:
            return "multi"
        if self.team_captain is not None or self.team_members is not None:
            return "single"
        return None


class OrganizationDocument(DocumentModel):
    """Per-organization document, stored at ``orgs/{orgSlug}.json``."""

    schema_version: str = CURRENT_SCHEMA_VERSION
    updated_at: str | None = None
    org: OrganizationProfile
    privacy: OrganizationPrivacy = Field(default_factory=OrganizationPrivacy)
    hunts: list[Event] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_event_ids(self) -> OrganizationDocument:
        seen: set[str] = set()
        for hunt in self.hunts:
            if hunt.id in seen:
                raise ValueError(f"duplicate event id {hunt.id!r}")
            seen.add(hunt.id)
        return self

    @property
    def org_slug(self) -> str:
        return self.org.org_slug

    def find_event(self, event_id: str) -> Event | None:
        """Return the embedded event with ``event_id``, or None."""
        return next((h for h in self.hunts if h.id == event_id), None)


# ============================================================================
#                           Registry document
# ============================================================================


class RegistryMetadata(DocumentModel):
    name: str = "huntkeeper"
    environment: str = "development"
    ui_version: str | None = None


class Limits(DocumentModel):
    max_upload_size_mb: int = Field(default=200, gt=0, alias="maxUploadSizeMB")
    max_media_per_team: int = Field(default=100, gt=0)
    allowed_media_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_MEDIA_TYPES)
    )


class RegistryPrivacy(DocumentModel):
    media_retention_days: int = Field(default=365, ge=0)
    data_deletion_contact: EmailStr | None = None


class OrganizationSummary(DocumentModel):
    """Registry-level digest of one organization."""

    org_slug: Slug
    org_name: str = Field(min_length=1)
    primary_contact_email: EmailStr
    created_at: str | None = None
    hunts_total: int = Field(default=0, ge=0)
    common_teams: list[str] = Field(default_factory=list)


class DateIndexEntry(DocumentModel):
    """Pointer from a calendar date to one event of one organization."""

    model_config = ConfigDict(frozen=True)

    org_slug: Slug
    event_id: str = Field(min_length=1)


class RegistryDocument(DocumentModel):
    """Deployment-wide singleton stored at ``registry.json``."""

    schema_version: str = CURRENT_SCHEMA_VERSION
    updated_at: str | None = None
    metadata: RegistryMetadata = Field(default_factory=RegistryMetadata)
    feature_flags: dict[str, bool] = Field(default_factory=dict)
    limits: Limits = Field(default_factory=Limits)
    privacy: RegistryPrivacy = Field(default_factory=RegistryPrivacy)
    organizations: list[OrganizationSummary] = Field(default_factory=list)
    by_date: dict[IsoDate, list[DateIndexEntry]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_unique_org_slugs(self) -> RegistryDocument:
        seen: set[str] = set()
        for summary in self.organizations:
            if summary.org_slug in seen:
                raise ValueError(f"duplicate orgSlug {summary.org_slug!r}")
            seen.add(summary.org_slug)
        return self

    def find_organization(self, org_slug: str) -> OrganizationSummary | None:
        return next((o for o in self.organizations if o.org_slug == org_slug), None)


class EventSummary(DocumentModel):
    """Flattened view of an event returned by date listings."""

    model_config = ConfigDict(frozen=True)

    org_slug: str
    org_name: str
    event_id: str
    slug: str
    name: str
    start_date: str
    end_date: str
    status: EventStatus
    visibility: Visibility

    @classmethod
    def from_event(cls, org: OrganizationProfile, event: Event) -> EventSummary:
        return cls(
            org_slug=org.org_slug,
            org_name=org.org_name,
            event_id=event.id,
            slug=event.slug,
            name=event.name,
            start_date=event.start_date,
            end_date=event.end_date,
            status=event.status,
            visibility=event.access.visibility,
        )


def skeleton_registry() -> RegistryDocument:
    """Default registry used when none has been stored yet."""
    return RegistryDocument()
