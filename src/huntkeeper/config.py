"""Configuration utilities for huntkeeper.

Backend selection and validation behaviour come from the environment:

| Variable                         | Meaning                                   |
|----------------------------------|-------------------------------------------|
| ``HUNTKEEPER_BACKEND``           | ``blob`` (default), ``table`` or ``memory`` |
| ``HUNTKEEPER_BLOB_ROOT``         | Root directory of the blob backend         |
| ``HUNTKEEPER_DB_URL``            | SQLAlchemy URL of the table backend        |
| ``HUNTKEEPER_AUTO_MIGRATE``      | Migrate outdated documents on read (``true``) |
| ``HUNTKEEPER_STRICT_VALIDATION`` | Reject recoverable shape issues (``false``) |

When ``HUNTKEEPER_BLOB_ROOT`` is unset, the blob backend uses the per-user
data directory reported by ``platformdirs``.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from importlib.resources import files
from pathlib import Path
from typing import TextIO

from alembic.config import Config
from platformdirs import user_data_path

ALEMBIC_URL_KEY = "sqlalchemy.url"  # pragma: no mutate
ALEMBIC_SCRIPT_LOCATION_KEY = "script_location"  # pragma: no mutate

ENV_BACKEND = "HUNTKEEPER_BACKEND"  # pragma: no mutate
ENV_BLOB_ROOT = "HUNTKEEPER_BLOB_ROOT"  # pragma: no mutate
ENV_DB_URL = "HUNTKEEPER_DB_URL"  # pragma: no mutate
ENV_AUTO_MIGRATE = "HUNTKEEPER_AUTO_MIGRATE"  # pragma: no mutate
ENV_STRICT = "HUNTKEEPER_STRICT_VALIDATION"  # pragma: no mutate

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


class ConfigError(ValueError):
    """Raised when the storage configuration is incomplete or malformed."""


class DatabaseUrlNotSetError(ConfigError):
    """Raised when the HUNTKEEPER_DB_URL environment variable is not set."""


class BackendKind(str, Enum):
    """Storage backends the adapter registry can build."""

    BLOB = "blob"
    TABLE = "table"
    MEMORY = "memory"


@dataclass(frozen=True, slots=True)
class StoreConfig:
    """Which backend to use and how documents are validated.

    Attributes:
        backend: Storage backend kind.
        blob_root: Root directory (blob backend only).
        db_url: SQLAlchemy URL (table backend only).
        auto_migrate: Migrate outdated documents on read.
        strict: Strict validation mode.
    """

    backend: BackendKind = BackendKind.BLOB
    blob_root: Path | None = None
    db_url: str | None = None
    auto_migrate: bool = True
    strict: bool = False

    def __post_init__(self) -> None:
        if self.backend is BackendKind.BLOB and self.blob_root is None:
            raise ConfigError("The blob backend needs a root directory")
        if self.backend is BackendKind.TABLE and not self.db_url:
            raise DatabaseUrlNotSetError(
                f"The table backend needs a database URL ({ENV_DB_URL})"
            )

    @property
    def selection_key(self) -> tuple[BackendKind, str | None]:
        """What identifies the physical store; other fields only shape the repos."""
        if self.backend is BackendKind.BLOB:
            return self.backend, str(self.blob_root)
        if self.backend is BackendKind.TABLE:
            return self.backend, self.db_url
        return self.backend, None


def _flag(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def load_store_config(environ: Mapping[str, str] | None = None) -> StoreConfig:
    """Build a ``StoreConfig`` from environment variables.

    Args:
        environ: Mapping to read from; defaults to ``os.environ``.

    Raises:
        ConfigError: On an unknown backend, a malformed flag or missing
            backend parameters.
    """
    env = os.environ if environ is None else environ
    raw_backend = env.get(ENV_BACKEND, BackendKind.BLOB.value).strip().lower()
    try:
        backend = BackendKind(raw_backend)
    except ValueError as e:
        choices = ", ".join(k.value for k in BackendKind)
        raise ConfigError(f"{ENV_BACKEND} must be one of {choices}, got {raw_backend!r}") from e

    blob_root: Path | None = None
    if backend is BackendKind.BLOB:
        blob_root = Path(env.get(ENV_BLOB_ROOT) or user_data_path("huntkeeper"))

    return StoreConfig(
        backend=backend,
        blob_root=blob_root,
        db_url=env.get(ENV_DB_URL) or None,
        auto_migrate=_flag(env, ENV_AUTO_MIGRATE, True),
        strict=_flag(env, ENV_STRICT, False),
    )


def get_db_url() -> str:
    """Get the database URL from the environment.

    Returns:
        The value of the `HUNTKEEPER_DB_URL` environment variable.

    Raises:
        DatabaseUrlNotSetError: If `HUNTKEEPER_DB_URL` is not set.
    """
    if not (url := os.environ.get(ENV_DB_URL)):
        raise DatabaseUrlNotSetError
    return url


def build_alembic_config(
    db_url: str | None = None, stdout: TextIO = sys.stdout
) -> Config:
    """Build an Alembic `Config` for the table backend's schema scripts.

    Args:
        db_url: SQLAlchemy database URL, or `None` where Alembic won't connect
            (e.g. `heads`, `history`).
        stdout: Stream Alembic writes status lines to; override in tests.

    Returns:
        An `alembic.config.Config` pointing at the packaged scripts.
    """
    cfg = Config(stdout=stdout)
    if db_url is not None:
        cfg.set_main_option(ALEMBIC_URL_KEY, db_url)
    cfg.set_main_option(
        ALEMBIC_SCRIPT_LOCATION_KEY,
        str(files("huntkeeper.adapters.db") / "alembic"),
    )
    return cfg
