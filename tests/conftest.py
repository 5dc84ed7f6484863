"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from tests.fixtures.catalogs import FakeProvider, create_resource


@pytest.fixture
def write_filter(tmp_path: Path) -> Callable[..., Path]:
    """Write a filter document into a temporary directory and return its path."""

    def _write(content: str, filename: str = "filter.yaml") -> Path:
        path = tmp_path / filename
        path.write_text(content)
        return path

    return _write


@pytest.fixture
def queue_provider() -> FakeProvider:
    """Provider with three queues, two of them tagged env=test."""
    return FakeProvider(
        {
            "queue": [
                create_resource("queue", "q-1", name="orders", tags={"env": "test"}),
                create_resource("queue", "q-2", name="payments", tags={"env": "prod"}),
                create_resource("queue", "q-3", name="events", tags={"env": "test"}),
            ]
        }
    )
