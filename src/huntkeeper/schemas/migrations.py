"""Migration engine: walks a document from one schema version to another.

Each data type ("registry", "organization") owns an independent, linear chain
of migrations. Every version has at most one outgoing migration, so finding a
path is a simple walk: start at the source version and repeatedly follow the
migration whose ``from_version`` equals the current version.

Contract overview
- ``register`` rejects a second migration leaving the same version
  (``MigrationConfigError``), so chain ambiguity is caught at startup.
- ``migrate`` never mutates its input; each step works on a deep copy.
- After each step the attached ``validate`` check (if any) runs on the result.
  A failing step stops the walk; the result carries the steps applied so far.
- A walk longer than ``MAX_MIGRATION_HOPS`` is a registration bug (a cycle)
  and raises ``MigrationConfigError`` instead of returning a result.
- Transforms are pure. Persisting the migrated document is the caller's job.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

MAX_MIGRATION_HOPS = 20  # pragma: no mutate

Document = dict[str, Any]


class MigrationConfigError(Exception):
    """Raised when the registered migrations do not form a valid linear chain.

    This is a programming/configuration error, never a retryable condition.
    """


def version_key(version: str) -> tuple[int, ...]:
    """Sort key for dotted numeric versions (``"1.10.0"`` > ``"1.9.0"``)."""
    try:
        return tuple(int(part) for part in version.split("."))
    except ValueError as e:
        raise MigrationConfigError(f"Invalid schema version {version!r}") from e


@dataclass(frozen=True, slots=True)
class Migration:
    """One registered step of a version chain.

    Attributes:
        from_version: Version the step accepts.
        to_version: Version the step produces.
        description: Human-readable summary, used in logs.
        transform: Pure function returning the upgraded document.
        validate: Optional check of the upgraded document: a pydantic model
            class, or a callable raising ``ValueError``/``TypeError`` when the
            document is invalid.
    """

    from_version: str
    to_version: str
    description: str
    transform: Callable[[Document], Document]
    validate: type[BaseModel] | Callable[[Document], object] | None = None

    def __post_init__(self) -> None:
        if self.from_version == self.to_version:
            raise MigrationConfigError(
                f"Migration {self.from_version}->{self.to_version} does not change the version"
            )
        version_key(self.from_version)
        version_key(self.to_version)

    @property
    def label(self) -> str:
        """Step label recorded in ``MigrationResult.applied_steps``."""
        return f"{self.from_version}->{self.to_version}"

    def check(self, document: Document) -> None:
        """Run ``validate`` against an upgraded document; raises when invalid."""
        if self.validate is None:
            return
        if isinstance(self.validate, type) and issubclass(self.validate, BaseModel):
            self.validate.model_validate(document)
        else:
            self.validate(document)


@dataclass(frozen=True, slots=True)
class MigrationResult:
    """Outcome of ``MigrationEngine.migrate``.

    ``document`` is the migrated document on success and None otherwise.
    ``applied_steps`` lists the steps that completed, also on failure.
    """

    success: bool
    document: Document | None = None
    error: str | None = None
    applied_steps: tuple[str, ...] = field(default_factory=tuple)


class MigrationEngine:
    """Registry of per-data-type migration chains, and the walker over them."""

    def __init__(self) -> None:
        self._chains: dict[str, dict[str, Migration]] = {}

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def register(self, data_type: str, migration: Migration) -> None:
        """Register ``migration`` for ``data_type``.

        Raises:
            MigrationConfigError: If a migration leaving
                ``migration.from_version`` is already registered.
        """
        chain = self._chains.setdefault(data_type, {})
        if (existing := chain.get(migration.from_version)) is not None:
            raise MigrationConfigError(
                f"{data_type}: migration from {migration.from_version} already "
                f"registered ({existing.label}); refusing {migration.label}"
            )
        chain[migration.from_version] = migration
        logger.debug("Registered %s migration %s", data_type, migration.label)

    def migrations(self, data_type: str) -> list[Migration]:
        """Registered migrations for ``data_type``, ordered by source version."""
        chain = self._chains.get(data_type, {})
        return [chain[v] for v in sorted(chain, key=version_key)]

    def available_versions(self, data_type: str) -> list[str]:
        """Every version mentioned by the chain of ``data_type``, oldest first."""
        versions: set[str] = set()
        for migration in self._chains.get(data_type, {}).values():
            versions.update((migration.from_version, migration.to_version))
        return sorted(versions, key=version_key)

    def latest_version(self, data_type: str) -> str | None:
        versions = self.available_versions(data_type)
        return versions[-1] if versions else None

    def needs_migration(self, data_type: str, version: str, target: str) -> bool:
        """True when ``version`` differs from ``target`` and a step leaves it."""
        return version != target and version in self._chains.get(data_type, {})

    def check_chain(self, data_type: str) -> None:
        """Verify every registered version reaches the latest one.

        Raises:
            MigrationConfigError: On a cycle, a walk longer than
                ``MAX_MIGRATION_HOPS``, or a version that cannot reach the
                latest version.
        """
        latest = self.latest_version(data_type)
        if latest is None:
            return
        chain = self._chains[data_type]
        if latest in chain:
            raise MigrationConfigError(
                f"{data_type}: latest version {latest} has an outgoing migration "
                f"({chain[latest].label}); the chain is cyclic"
            )
        for start in chain:
            current, hops = start, 0
            while current != latest:
                if (step := chain.get(current)) is None:
                    raise MigrationConfigError(
                        f"{data_type}: no migration from {current}; "
                        f"{start} cannot reach {latest}"
                    )
                current = step.to_version
                hops += 1
                if hops > MAX_MIGRATION_HOPS:
                    raise MigrationConfigError(
                        f"{data_type}: chain from {start} exceeds {MAX_MIGRATION_HOPS} hops"
                    )

    # ------------------------------------------------------------------ #
    # Migration
    # ------------------------------------------------------------------ #

    def migrate(
        self,
        data_type: str,
        document: Mapping[str, Any],
        from_version: str,
        to_version: str,
    ) -> MigrationResult:
        """Walk ``document`` from ``from_version`` to ``to_version``.

        Args:
            data_type: Chain to use ("registry", "organization").
            document: Raw document; never mutated.
            from_version: Version the document is tagged with.
            to_version: Version to reach.

        Returns:
            MigrationResult: success with the migrated document, or failure
            with an error message and the steps applied before the failure.

        Raises:
            MigrationConfigError: If the walk exceeds ``MAX_MIGRATION_HOPS``.
        """
        if from_version == to_version:
            return MigrationResult(success=True, document=copy.deepcopy(dict(document)))

        chain = self._chains.get(data_type, {})
        current_version = from_version
        current: Document = copy.deepcopy(dict(document))
        applied: list[str] = []

        while current_version != to_version:
            if len(applied) >= MAX_MIGRATION_HOPS:
                raise MigrationConfigError(
                    f"{data_type}: migration from {from_version} to {to_version} "
                    f"exceeded {MAX_MIGRATION_HOPS} hops; the chain is probably cyclic"
                )
            step = chain.get(current_version)
            if step is None:
                return MigrationResult(
                    success=False,
                    error=(
                        f"No {data_type} migration registered from {current_version} "
                        f"(target {to_version})"
                    ),
                    applied_steps=tuple(applied),
                )

            try:
                upgraded = step.transform(copy.deepcopy(current))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning("%s migration %s failed: %s", data_type, step.label, e)
                return MigrationResult(
                    success=False,
                    error=f"Migration {step.label} failed: {e!r}",
                    applied_steps=tuple(applied),
                )
            try:
                step.check(upgraded)
            except (TypeError, ValueError) as e:
                logger.warning(
                    "%s migration %s produced an invalid document: %s",
                    data_type,
                    step.label,
                    e.error_count() if isinstance(e, ValidationError) else e,
                )
                return MigrationResult(
                    success=False,
                    error=f"Migration {step.label} produced an invalid document: {e}",
                    applied_steps=tuple(applied),
                )

            logger.info("Applied %s migration %s (%s)", data_type, step.label, step.description)
            applied.append(step.label)
            current = upgraded
            current_version = step.to_version

        return MigrationResult(success=True, document=current, applied_steps=tuple(applied))
