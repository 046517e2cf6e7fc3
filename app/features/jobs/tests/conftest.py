"""Test fixtures for jobs module."""

from datetime import UTC, datetime

import pytest
from httpx import ASGITransport, AsyncClient

from app.features.jobs.models import JobStatus, JobType
from app.features.jobs.schemas import JobResponse
from app.main import app


@pytest.fixture
def sample_job_response() -> JobResponse:
    """Create a completed store sync job response."""
    now = datetime.now(UTC)
    return JobResponse(
        job_id="abc123def4567890123456789012abcd",
        job_type=JobType.STORE_SYNC,
        status=JobStatus.COMPLETED,
        store_id=1,
        params={"store_id": 1},
        result={"orders": 12, "products": 4, "session_metrics": 30},
        error_message=None,
        error_type=None,
        started_at=now,
        completed_at=now,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def sample_failed_job_response() -> JobResponse:
    """Create a failed store sync job response."""
    now = datetime.now(UTC)
    return JobResponse(
        job_id="fed456abc1237890123456789012abcd",
        job_type=JobType.STORE_SYNC,
        status=JobStatus.FAILED,
        store_id=1,
        params={"store_id": 1},
        result=None,
        error_message="Shopify request failed: 401 Unauthorized",
        error_type="ExternalServiceError",
        started_at=now,
        completed_at=now,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
async def client():
    """Create async test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
