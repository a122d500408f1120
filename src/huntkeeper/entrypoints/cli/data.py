"""``huntkeeper data``: operator commands over the stored documents.

- ``check`` validates the registry and every organization document of the
  configured backend and reports their schema versions. ``--repair`` writes
  migrated documents back (conditionally, with the etag just read).
- ``copy`` copies every valid document into another backend. The target's
  date index is rebuilt from the copied organization documents, and their
  registry summaries are refreshed on the way.

Both exit non-zero when any document is invalid.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import click
import click_extra as clickx

from huntkeeper.bootstrap import build_repositories, build_store
from huntkeeper.config import BackendKind, ConfigError, StoreConfig, load_store_config
from huntkeeper.domain.models import OrganizationDocument, RegistryDocument
from huntkeeper.interfaces.document_store import (
    ORGANIZATION_PREFIX,
    REGISTRY_KEY,
    DocumentStore,
    InvalidSlugError,
    organization_key,
    slug_from_key,
)
from huntkeeper.interfaces.errors import RepositoryError
from huntkeeper.schemas import (
    ORGANIZATION,
    REGISTRY,
    ValidationIssue,
    ValidationResult,
    ValidationService,
    build_validation_service,
)

from .helpers import error, success, warn

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _Checked:
    """One stored document after validation."""

    key: str
    data_type: str
    etag: str | None
    result: ValidationResult


def _source_config() -> StoreConfig:
    try:
        return load_store_config()
    except ConfigError as e:
        raise click.ClickException(str(e)) from e


def _checked_documents(
    store: DocumentStore, validator: ValidationService, *, strict: bool = False
) -> list[_Checked]:
    """Validate (and migrate in memory) the registry and each organization.

    Objects under ``orgs/`` whose name is not a valid slug are reported as
    invalid without being read.
    """
    keys = [(REGISTRY, REGISTRY_KEY)]
    stray: list[_Checked] = []
    for key in store.list_keys(ORGANIZATION_PREFIX):
        if (slug := slug_from_key(key)) is None:
            continue
        try:
            keys.append((ORGANIZATION, organization_key(slug)))
        except InvalidSlugError as e:
            issue = ValidationIssue("INVALID_ORG_SLUG", str(e), path="org.orgSlug")
            stray.append(
                _Checked(key, ORGANIZATION, None, ValidationResult(False, errors=(issue,)))
            )
    checked: list[_Checked] = []
    for data_type, key in keys:
        stored = store.read(key)
        if stored is None:
            continue
        result = validator.validate(data_type, stored.payload, strict=strict)
        checked.append(_Checked(key, data_type, stored.etag, result))
    return checked + stray


def _report(item: _Checked) -> None:
    result = item.result
    if not result.success:
        error(f"{item.key}: invalid (schemaVersion {result.source_version or '?'})")
        for issue in result.errors:
            click.echo(f"    {issue}")
        return
    if result.migration_applied:
        click.echo(
            f"{item.key}: {result.source_version} -> "
            f"{result.data.schema_version}"  # type: ignore[union-attr]
            f" ({', '.join(result.applied_steps)})"
        )
    else:
        click.echo(f"{item.key}: ok ({result.source_version})")
    for warning in result.warnings:
        click.echo(f"    {warning}")


@click.group(cls=clickx.ExtraGroup)
def data() -> None:
    """Validate, repair and copy stored documents."""


@data.command()
@click.option(
    "--repair",
    is_flag=True,
    help="Write migrated documents back to the backend.",
)
def check(repair: bool) -> None:
    """Validate every stored document of the configured backend."""
    source_config = _source_config()
    store = build_store(source_config)
    try:
        checked = _checked_documents(
            store, build_validation_service(), strict=source_config.strict
        )
    except RepositoryError as e:
        raise click.ClickException(str(e)) from e

    invalid = 0
    repaired = 0
    for item in checked:
        _report(item)
        if not item.result.success:
            invalid += 1
            continue
        if repair and item.result.migration_applied:
            try:
                store.write(
                    item.key,
                    item.result.data.to_document(),  # type: ignore[union-attr]
                    expected_etag=item.etag,
                )
            except RepositoryError as e:
                warn(f"{item.key}: not repaired: {e}")
            else:
                repaired += 1

    if repair:
        click.echo(f"Repaired {repaired} document(s).")
    if invalid:
        raise click.ClickException(f"{invalid} invalid document(s).")
    success(f"Checked {len(checked)} document(s).")


@data.command("copy")
@click.option(
    "--to-backend",
    "to_backend",
    type=click.Choice([k.value for k in BackendKind], case_sensitive=False),
    required=True,
    help="Backend kind to copy into.",
)
@click.option(
    "--to-blob-root",
    type=click.Path(file_okay=False, path_type=Path),
    help="Root directory of the target blob backend.",
)
@click.option("--to-db-url", help="SQLAlchemy URL of the target table backend.")
def copy_documents(
    to_backend: str, to_blob_root: Path | None, to_db_url: str | None
) -> None:
    """Copy the registry and every organization into another backend."""
    source_config = _source_config()
    source = build_store(source_config)
    try:
        target_config = StoreConfig(
            backend=BackendKind(to_backend.lower()),
            blob_root=to_blob_root,
            db_url=to_db_url,
        )
    except ConfigError as e:
        raise click.UsageError(str(e)) from e

    validator = build_validation_service()
    target, _ = build_repositories(build_store(target_config), validator)

    try:
        checked = _checked_documents(source, validator, strict=source_config.strict)
        invalid = [c for c in checked if not c.result.success]
        for item in invalid:
            _report(item)

        registry = next(
            (c.result.data for c in checked if c.data_type == REGISTRY and c.result.success),
            None,
        )
        if isinstance(registry, RegistryDocument):
            target.upsert_registry(registry.model_copy(update={"by_date": {}}))

        copied = 0
        for item in checked:
            document = item.result.data
            if item.data_type == ORGANIZATION and isinstance(document, OrganizationDocument):
                target.upsert_organization(document.org_slug, document)
                logger.info("Copied %s", item.key)
                copied += 1
    except RepositoryError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Copied {copied} organization(s) to the {to_backend} backend.")
    if invalid:
        raise click.ClickException(f"{len(invalid)} invalid document(s) were not copied.")
    success("Copy complete!")
