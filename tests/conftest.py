"""
FILE: tests/conftest.py
Shared fixtures for planner tests.
"""

from pathlib import Path

import pytest

from reallocation_planner.core.capacity import CachedCapacitySource
from tests.factories import two_source_snapshot


def _has_marker(item: pytest.Item, name: str) -> bool:
    return item.get_closest_marker(name) is not None


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if (
            _has_marker(item, "unit")
            or _has_marker(item, "integration")
            or _has_marker(item, "e2e")
        ):
            continue

        path = Path(str(item.fspath)).as_posix().lower()
        if "/tests/integration/" in path:
            item.add_marker(pytest.mark.integration)
            continue
        if "/tests/e2e/" in path:
            item.add_marker(pytest.mark.e2e)
            continue
        item.add_marker(pytest.mark.unit)


@pytest.fixture
def base_snapshot():
    return two_source_snapshot()


@pytest.fixture
def cached_source(base_snapshot):
    return CachedCapacitySource(base_snapshot)


@pytest.fixture(autouse=True)
def reallocation_env_defaults(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("REALLOCATION_LIVE_READS_ENABLED", raising=False)
    monkeypatch.delenv("REALLOCATION_MAX_SOURCING_VAULTS", raising=False)
