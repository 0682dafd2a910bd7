"""
Pytest configuration for the festival importer tests.
"""

from datetime import date

import pytest
import pytest_asyncio

from app.db import ConnectionPool, ensure_schema
from app.models import FestivalRecord


def pytest_configure(config):
    """Register the asyncio marker."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an asyncio test"
    )


@pytest.fixture
def db_path(tmp_path):
    """Create a fresh DB with schema applied."""
    path = str(tmp_path / "test.db")
    ensure_schema(path)
    return path


@pytest_asyncio.fixture
async def pool(db_path):
    """Open a small pool on the fresh DB; closed after the test."""
    pool = ConnectionPool(db_path, size=4, timeout=1.0)
    await pool.open()
    yield pool
    await pool.close()


def make_record(
    name="Spring Swing Camp",
    start=date(2025, 4, 10),
    end=date(2025, 4, 13),
    venue=None,
    **kwargs,
) -> FestivalRecord:
    """Build a FestivalRecord with sensible defaults."""
    return FestivalRecord(
        name=name,
        start_date=start,
        end_date=end,
        venue=venue or {"name": "Grand Ballroom", "city": "Portland", "country": "USA"},
        **kwargs,
    )


@pytest.fixture
def record_factory():
    return make_record
