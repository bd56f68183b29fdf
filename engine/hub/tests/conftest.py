"""
Core test configuration.

Tests in this package are pure: no store, no network, no event loop
unless a test marks itself asyncio.
"""

from __future__ import annotations

import pytest

from engine.hub.types import Column, Row, TableData


@pytest.fixture
def two_by_two() -> TableData:
    return TableData(
        columns=(Column(id="c1", name="Name"), Column(id="c2", name="Owner")),
        rows=(
            Row(id="r1", data={"c1": "Runbook", "c2": "ops"}),
            Row(id="r2", data={"c1": "Roadmap", "c2": "pm"}),
        ),
    )
