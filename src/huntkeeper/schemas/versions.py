"""Schema version registry.

Declares, per data type, which schema versions exist, which pydantic model
describes each of them, and which one is current. Validation uses it to pick
the model for the final shape and to flag deprecated source versions.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel

from .migrations import MigrationConfigError, version_key


@dataclass(frozen=True, slots=True)
class SchemaVersion:
    """One declared version of a data type's schema."""

    version: str
    model: type[BaseModel] | None
    description: str = ""
    deprecated: bool = False


class UnknownSchemaVersionError(LookupError):
    """Raised when a data type or version has not been declared."""

    def __init__(self, data_type: str, version: str | None = None) -> None:
        self.data_type = data_type
        self.version = version
        if version is None:
            super().__init__(f"Unknown data type {data_type!r}")
        else:
            super().__init__(f"Unknown {data_type} schema version {version!r}")


class SchemaVersionRegistry:
    """Declared versions of every data type, newest last."""

    def __init__(self) -> None:
        self._versions: dict[str, dict[str, SchemaVersion]] = {}

    def register(self, data_type: str, schema: SchemaVersion) -> None:
        """Declare ``schema`` for ``data_type``.

        Raises:
            MigrationConfigError: If the version is already declared.
        """
        declared = self._versions.setdefault(data_type, {})
        if schema.version in declared:
            raise MigrationConfigError(
                f"{data_type}: schema version {schema.version} declared twice"
            )
        version_key(schema.version)
        declared[schema.version] = schema

    def data_types(self) -> list[str]:
        return sorted(self._versions)

    def versions(self, data_type: str) -> list[str]:
        """Declared versions of ``data_type``, oldest first."""
        return sorted(self._declared(data_type), key=version_key)

    def latest(self, data_type: str) -> str:
        return self.versions(data_type)[-1]

    def oldest(self, data_type: str) -> str:
        return self.versions(data_type)[0]

    def is_known(self, data_type: str, version: str) -> bool:
        return version in self._versions.get(data_type, {})

    def get(self, data_type: str, version: str) -> SchemaVersion:
        try:
            return self._declared(data_type)[version]
        except KeyError as e:
            raise UnknownSchemaVersionError(data_type, version) from e

    def get_model(self, data_type: str, version: str) -> type[BaseModel]:
        """Return the model validating ``version`` of ``data_type``.

        Raises:
            UnknownSchemaVersionError: If the version is not declared or has
                no model attached.
        """
        if (model := self.get(data_type, version).model) is None:
            raise UnknownSchemaVersionError(data_type, version)
        return model

    def is_deprecated(self, data_type: str, version: str) -> bool:
        return self.is_known(data_type, version) and self.get(data_type, version).deprecated

    def _declared(self, data_type: str) -> dict[str, SchemaVersion]:
        try:
            return self._versions[data_type]
        except KeyError as e:
            raise UnknownSchemaVersionError(data_type) from e
