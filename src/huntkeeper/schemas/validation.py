"""Schema and validation layer.

``ValidationService.validate`` is the single entry point through which every
stored or caller-supplied document passes. It

1. detects the document's schema version (``schemaVersion``),
2. migrates outdated documents to the target version when ``auto_migrate``
   is set (through ``MigrationEngine``),
3. validates the final shape against the target version's pydantic model,
4. reports ``migration_applied`` so adapters can persist the upgraded form.

Strictness
- ``strict=False`` drops ``null`` values before validation so the model's
  defaults apply, and lets pydantic coerce compatible scalar types.
- ``strict=True`` requires ``schemaVersion``, rejects ``null`` for non-optional
  fields and disables type coercion.

Issue codes
    MISSING_SCHEMA_VERSION, UNKNOWN_SCHEMA_VERSION, MIGRATION_REQUIRED,
    MIGRATION_FAILED, INVALID_DOCUMENT, and pydantic error types
    (``missing``, ``string_pattern_mismatch``, ...) for structural errors.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ValidationError

from .migrations import MigrationEngine
from .versions import SchemaVersionRegistry

logger = logging.getLogger(__name__)

VersionDetector = Callable[[dict[str, Any]], str]

_SUGGESTIONS = {
    "missing": "Provide a value for this field.",
    "string_pattern_mismatch": "Check the format (slugs are lowercase, dates are YYYY-MM-DD).",
    "value_error": "Check the value against the documented constraints.",
    "literal_error": "Use one of the allowed values.",
    "too_short": "Add at least one item.",
    "int_parsing": "Use a whole number.",
    "bool_parsing": "Use true or false.",
}


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """One error or warning found while validating a document."""

    code: str
    message: str
    path: str = ""
    suggestion: str | None = None

    def __str__(self) -> str:
        where = f" at {self.path}" if self.path else ""
        return f"{self.code}{where}: {self.message}"


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of ``ValidationService.validate``.

    Attributes:
        success: True when ``data`` holds a valid document.
        data: The validated model instance (target version) on success.
        errors: Issues that made validation fail.
        warnings: Non-fatal observations (deprecated source version...).
        migration_applied: True when at least one version transform ran.
        source_version: Version the candidate was tagged with (or detected as).
        applied_steps: Migration steps applied, also on failure.
    """

    success: bool
    data: BaseModel | None = None
    errors: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationIssue, ...] = ()
    migration_applied: bool = False
    source_version: str | None = None
    applied_steps: tuple[str, ...] = field(default_factory=tuple)


def strip_nulls(value: Any) -> Any:
    """Recursively drop ``None`` values from mappings (lax mode)."""
    if isinstance(value, Mapping):
        return {k: strip_nulls(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [strip_nulls(v) for v in value]
    return value


def issues_from_error(error: ValidationError) -> tuple[ValidationIssue, ...]:
    """Convert a pydantic ``ValidationError`` into ``ValidationIssue`` items."""
    return tuple(
        ValidationIssue(
            code=err["type"],
            message=err["msg"],
            path=".".join(str(part) for part in err["loc"]),
            suggestion=_SUGGESTIONS.get(err["type"]),
        )
        for err in error.errors(include_url=False)
    )


class ValidationService:
    """Version-aware validator over a ``SchemaVersionRegistry`` and a ``MigrationEngine``."""

    def __init__(
        self,
        versions: SchemaVersionRegistry,
        engine: MigrationEngine,
        detectors: Mapping[str, VersionDetector] | None = None,
    ) -> None:
        self.versions = versions
        self.engine = engine
        self._detectors = dict(detectors or {})

    def validate(  # pylint: disable=too-many-arguments,too-many-return-statements
        self,
        data_type: str,
        candidate: Any,
        *,
        auto_migrate: bool = True,
        strict: bool = False,
        include_warnings: bool = True,
        target_version: str | None = None,
    ) -> ValidationResult:
        """Validate ``candidate`` as ``data_type``, migrating it if allowed.

        Args:
            data_type: "registry" or "organization".
            candidate: Raw document (mapping) or a model instance.
            auto_migrate: Migrate outdated documents instead of rejecting them.
            strict: Reject recoverable shape issues instead of coercing them.
            include_warnings: Collect non-fatal warnings.
            target_version: Version to validate against; defaults to latest.

        Returns:
            ValidationResult: never raises for invalid documents.
        """
        if isinstance(candidate, BaseModel):
            candidate = candidate.model_dump(mode="json", by_alias=True, exclude_none=True)
        if not isinstance(candidate, Mapping):
            return ValidationResult(
                success=False,
                errors=(
                    ValidationIssue(
                        "INVALID_DOCUMENT",
                        f"Expected a JSON object, got {type(candidate).__name__}",
                    ),
                ),
            )

        document = dict(candidate)
        target = target_version or self.versions.latest(data_type)
        warnings: list[ValidationIssue] = []

        version = document.get("schemaVersion")
        if not isinstance(version, str) or not version:
            if strict:
                return ValidationResult(
                    success=False,
                    errors=(
                        ValidationIssue(
                            "MISSING_SCHEMA_VERSION",
                            "Document has no schemaVersion",
                            path="schemaVersion",
                            suggestion=f"Tag the document with a version (current: {target}).",
                        ),
                    ),
                )
            version = self._detect(data_type, document)
            document["schemaVersion"] = version
            warnings.append(
                ValidationIssue(
                    "MISSING_SCHEMA_VERSION",
                    f"Document has no schemaVersion; treated as {version}",
                    path="schemaVersion",
                )
            )

        if not self.versions.is_known(data_type, version):
            return ValidationResult(
                success=False,
                source_version=version,
                errors=(
                    ValidationIssue(
                        "UNKNOWN_SCHEMA_VERSION",
                        f"Unknown {data_type} schema version {version!r}",
                        path="schemaVersion",
                        suggestion=f"Known versions: {', '.join(self.versions.versions(data_type))}",
                    ),
                ),
            )
        if self.versions.is_deprecated(data_type, version):
            warnings.append(
                ValidationIssue(
                    "DEPRECATED_VERSION",
                    f"{data_type} schema version {version} is deprecated",
                    path="schemaVersion",
                    suggestion="Re-save the document to upgrade it.",
                )
            )

        applied: tuple[str, ...] = ()
        if version != target:
            if not auto_migrate:
                return ValidationResult(
                    success=False,
                    source_version=version,
                    errors=(
                        ValidationIssue(
                            "MIGRATION_REQUIRED",
                            f"Document is at {version}, expected {target}",
                            path="schemaVersion",
                            suggestion="Enable auto-migration or migrate the document first.",
                        ),
                    ),
                )
            result = self.engine.migrate(data_type, document, version, target)
            applied = result.applied_steps
            if not result.success or result.document is None:
                return ValidationResult(
                    success=False,
                    source_version=version,
                    applied_steps=applied,
                    errors=(
                        ValidationIssue(
                            "MIGRATION_FAILED",
                            result.error or "Migration failed",
                            path="schemaVersion",
                        ),
                    ),
                )
            document = result.document

        if not strict:
            document = strip_nulls(document)

        model = self.versions.get_model(data_type, target)
        try:
            data = model.model_validate(document, strict=strict)
        except ValidationError as e:
            logger.debug("%s document failed validation: %s", data_type, e)
            return ValidationResult(
                success=False,
                errors=issues_from_error(e),
                source_version=version,
                applied_steps=applied,
                migration_applied=bool(applied),
            )

        if include_warnings:
            warnings.extend(self._shape_warnings(candidate))

        return ValidationResult(
            success=True,
            data=data,
            warnings=tuple(warnings) if include_warnings else (),
            migration_applied=bool(applied),
            source_version=version,
            applied_steps=applied,
        )

    def validate_only(
        self, data_type: str, candidate: Any, version: str | None = None
    ) -> ValidationResult:
        """Validate against ``version`` (default: latest) without migrating."""
        return self.validate(
            data_type,
            candidate,
            auto_migrate=False,
            include_warnings=False,
            target_version=version,
        )

    def _detect(self, data_type: str, document: dict[str, Any]) -> str:
        if (detector := self._detectors.get(data_type)) is not None:
            return detector(document)
        return self.versions.oldest(data_type)

    @staticmethod
    def _shape_warnings(candidate: Mapping[str, Any]) -> list[ValidationIssue]:
        warnings: list[ValidationIssue] = []
        if "privacy" not in candidate:
            warnings.append(
                ValidationIssue(
                    "MISSING_PRIVACY_CONFIG",
                    "No privacy settings stored; defaults apply",
                    path="privacy",
                    suggestion="Store explicit privacy settings.",
                )
            )
        for index, hunt in enumerate(candidate.get("hunts") or []):
            if isinstance(hunt, Mapping) and "teamCaptain" in hunt:
                warnings.append(
                    ValidationIssue(
                        "LEGACY_TEAM_MODEL",
                        "Event uses the single-team captain model",
                        path=f"hunts.{index}",
                    )
                )
        return warnings
