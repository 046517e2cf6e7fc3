"""Test fixtures for analytics module."""

from datetime import date

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.config import Settings
from app.features.analytics.date_ranges import DateRange
from app.main import app


@pytest.fixture
def march_range() -> DateRange:
    """Ten-day primary range used across tests."""
    return DateRange(start=date(2024, 3, 1), end=date(2024, 3, 10))


@pytest.fixture
def analytics_settings() -> Settings:
    """Settings with default analytics thresholds."""
    return Settings()


@pytest.fixture
async def client():
    """Create async test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
