"""Repository error taxonomy.

Callers (an HTTP layer, the CLI) map these to distinct outcomes:

- ``NotFoundError`` -> 404
- ``ValidationFailedError`` -> 400/422
- ``ConcurrencyConflictError`` -> 409
- ``BackendUnavailableError`` -> transient; the only one callers may retry
  automatically (``retryable = True``).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, ClassVar

from huntkeeper.schemas.validation import ValidationIssue


class RepositoryError(Exception):
    """Base class for all repository errors."""

    retryable: ClassVar[bool] = False


class NotFoundError(RepositoryError):
    """The requested document or embedded entity does not exist."""

    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"{kind} ({key}) not found")
        self.kind = kind
        self.key = key


class ValidationFailedError(RepositoryError):
    """A document was rejected by schema validation or migration.

    On read paths ``raw_document`` holds the stored payload exactly as found so
    operators can diagnose irrecoverably invalid documents.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        data_type: str,
        key: str,
        issues: Iterable[ValidationIssue],
        *,
        raw_document: Mapping[str, Any] | None = None,
        applied_steps: Iterable[str] = (),
    ) -> None:
        self.data_type = data_type
        self.key = key
        self.issues = tuple(issues)
        self.raw_document = raw_document
        self.applied_steps = tuple(applied_steps)
        summary = "; ".join(str(issue) for issue in self.issues[:3]) or "invalid document"
        if len(self.issues) > 3:
            summary += f" (+{len(self.issues) - 3} more)"
        super().__init__(f"{data_type} ({key}) failed validation: {summary}")

    @property
    def codes(self) -> list[str]:
        return [issue.code for issue in self.issues]


class ConcurrencyConflictError(RepositoryError):
    """A conditional write carried a stale etag; nothing was written."""

    def __init__(self, key: str, expected: str | None, actual: str | None) -> None:
        super().__init__(
            f"{key} concurrency conflict: expected etag={expected}, current etag={actual}"
        )
        self.key = key
        self.expected = expected
        self.actual = actual


class BackendUnavailableError(RepositoryError):
    """Transient I/O failure talking to the storage backend; callers may retry."""

    retryable = True
