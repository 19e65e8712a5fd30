"""Root conftest.py for pytest configuration.

Provides --run-slow flag to opt in to slow tests (skipped by default), and
resets the event callback registry around every test.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from task_orchestrator import events


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-slow", action="store_true", default=False, help="Run tests marked @pytest.mark.slow"
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="needs --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture(autouse=True)
def _isolated_callbacks() -> Iterator[None]:
    events.clear_callbacks()
    yield
    events.clear_callbacks()
