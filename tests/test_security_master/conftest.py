"""Shared fixtures for security master tests."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest


@pytest.fixture
def mock_connection() -> AsyncMock:
    """Mock asyncpg connection handed out by Database.transaction()."""
    conn = AsyncMock()
    conn.fetchval = AsyncMock(return_value=None)
    conn.execute = AsyncMock(return_value="INSERT 0 1")
    return conn


@pytest.fixture
def mock_database(mock_connection: AsyncMock) -> AsyncMock:
    """Mock Database instance matching the Database API."""
    db = AsyncMock()
    db.fetch = AsyncMock(return_value=[])
    db.fetchval = AsyncMock(return_value=None)
    db.fetchrow = AsyncMock(return_value=None)
    db.execute = AsyncMock(return_value="CREATE TABLE")

    @asynccontextmanager
    async def transaction():
        yield mock_connection

    db.transaction = transaction
    return db


@pytest.fixture
def apple_row() -> dict:
    """A dict mimicking the asyncpg Record of a joined lookup."""
    return {
        "security_id": 1,
        "name": "Apple Inc.",
        "security_type": None,
        "market_sector": "Technology",
        "created_at": datetime(2026, 1, 5, tzinfo=timezone.utc),
        "updated_at": datetime(2026, 1, 5, tzinfo=timezone.utc),
        "ticker": "AAPL",
        "exchange": "NASDAQ",
        "isin": "US0378331005",
        "cusip": "037833100",
        "cik": "0000320193",
        "source": "fmp",
        "fetched_at": datetime(2026, 1, 5, tzinfo=timezone.utc),
    }


@pytest.fixture
def ticker_only_row() -> dict:
    """A security known only by ticker: sibling identifiers are NULL."""
    return {
        "security_id": 7,
        "name": "Example Corp",
        "security_type": None,
        "market_sector": None,
        "created_at": datetime(2026, 1, 5, tzinfo=timezone.utc),
        "updated_at": datetime(2026, 1, 5, tzinfo=timezone.utc),
        "ticker": "EXM",
        "exchange": "NYSE",
        "isin": None,
        "cusip": None,
        "cik": None,
        "source": "manual",
        "fetched_at": datetime(2026, 1, 5, tzinfo=timezone.utc),
    }
