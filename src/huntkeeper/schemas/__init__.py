"""Versioned schemas, migrations and validation for stored documents.

``build_validation_service()`` wires the registry and organization schema
histories into a ready-to-use ``ValidationService``.
"""

from __future__ import annotations

from . import organization_versions, registry_versions
from .migrations import Migration, MigrationConfigError, MigrationEngine, MigrationResult
from .validation import ValidationIssue, ValidationResult, ValidationService
from .versions import SchemaVersion, SchemaVersionRegistry, UnknownSchemaVersionError

REGISTRY = registry_versions.DATA_TYPE
ORGANIZATION = organization_versions.DATA_TYPE

__all__ = [
    "ORGANIZATION",
    "REGISTRY",
    "Migration",
    "MigrationConfigError",
    "MigrationEngine",
    "MigrationResult",
    "SchemaVersion",
    "SchemaVersionRegistry",
    "UnknownSchemaVersionError",
    "ValidationIssue",
    "ValidationResult",
    "ValidationService",
    "build_validation_service",
]


def build_validation_service() -> ValidationService:
    """Register every schema history and check the chains.

    Raises:
        MigrationConfigError: If a chain is ambiguous, cyclic or broken.
    """
    versions = SchemaVersionRegistry()
    engine = MigrationEngine()
    registry_versions.register(versions, engine)
    organization_versions.register(versions, engine)
    for data_type in versions.data_types():
        engine.check_chain(data_type)
    return ValidationService(
        versions,
        engine,
        detectors={
            REGISTRY: registry_versions.detect_version,
            ORGANIZATION: organization_versions.detect_version,
        },
    )
