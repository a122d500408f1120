"""Default marks for tests under `tests/functional/`."""

from pathlib import Path

import pytest

from tests.helpers.markers import mark_tree

# pylint: disable=unused-argument


@pytest.hookimpl(tryfirst=True)
def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    mark_tree(items, Path(__file__).parent.resolve(), "functional")
