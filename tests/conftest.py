"""Global pytest fixtures for huntkeeper."""

from __future__ import annotations

import pytest

from huntkeeper.schemas import ValidationService, build_validation_service

pytest_plugins = [
    "tests.fixtures.sqlite",
    "tests.fixtures.documents",
    "tests.fixtures.stores",
]


@pytest.fixture(scope="session")
def validator() -> ValidationService:
    """The production validation service (every schema history registered)."""
    return build_validation_service()
