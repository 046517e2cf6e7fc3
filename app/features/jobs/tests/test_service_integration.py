"""Integration tests for JobService against PostgreSQL.

Requires PostgreSQL (docker-compose up -d). Shopify is never called: the
sync step is patched.
"""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import get_settings
from app.core.database import Base
from app.core.exceptions import (
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ServiceUnavailableError,
)
from app.features.data_platform.models import Store
from app.features.jobs.models import Job, JobStatus, JobType
from app.features.jobs.service import JobService
from app.features.stores.sync import SyncResult

pytestmark = pytest.mark.integration


class StubWorker:
    """Worker double that records submissions or rejects them."""

    def __init__(self, reject: bool = False) -> None:
        self.reject = reject
        self.submitted: list[str] = []

    def submit(self, job_id: str) -> None:
        if self.reject:
            raise ServiceUnavailableError(message="Job queue is full; retry later")
        self.submitted.append(job_id)


@pytest.fixture
async def db_session():
    """Create tables, yield a session, drop tables."""
    settings = get_settings()
    engine = create_async_engine(settings.database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def store(db_session: AsyncSession) -> Store:
    store = Store(name="Jobs Store", url="https://jobs.myshopify.com", access_token="shpat_x")
    db_session.add(store)
    await db_session.commit()
    await db_session.refresh(store)
    return store


class TestSubmitSync:
    """Tests for JobService.submit_sync."""

    async def test_creates_pending_job_and_queues_it(
        self, db_session: AsyncSession, store: Store
    ) -> None:
        """Test the job is committed as pending and handed to the worker."""
        worker = StubWorker()

        job = await JobService().submit_sync(db_session, store.id, worker)

        assert job.status == JobStatus.PENDING
        assert job.job_type == JobType.STORE_SYNC
        assert job.store_id == store.id
        assert worker.submitted == [job.job_id]

    async def test_unknown_store_raises(self, db_session: AsyncSession) -> None:
        """Test syncing a missing store is a 404 and creates no job."""
        with pytest.raises(NotFoundError):
            await JobService().submit_sync(db_session, 9999, StubWorker())

        jobs = (await db_session.execute(select(Job))).scalars().all()
        assert jobs == []

    async def test_rejected_submission_marks_job_failed(
        self, db_session: AsyncSession, store: Store
    ) -> None:
        """Test a full queue leaves a failed job behind."""
        with pytest.raises(ServiceUnavailableError):
            await JobService().submit_sync(db_session, store.id, StubWorker(reject=True))

        job = (await db_session.execute(select(Job))).scalar_one()
        assert job.status == JobStatus.FAILED.value
        assert job.error_type == "ServiceUnavailableError"


class TestExecuteJob:
    """Tests for JobService.execute_job."""

    async def test_successful_sync_completes_job(
        self, db_session: AsyncSession, store: Store
    ) -> None:
        """Test the sync result is stored on the job."""
        service = JobService()
        job = await service.submit_sync(db_session, store.id, StubWorker())

        with patch(
            "app.features.stores.sync.SyncService.sync_store",
            new=AsyncMock(return_value=SyncResult(orders=3, products=2)),
        ):
            finished = await service.execute_job(db_session, job.job_id)

        assert finished is not None
        assert finished.status == JobStatus.COMPLETED
        assert finished.result is not None
        assert finished.result["orders"] == 3
        assert finished.result["products"] == 2
        assert finished.started_at is not None
        assert finished.completed_at is not None

    async def test_failed_sync_records_error(self, db_session: AsyncSession, store: Store) -> None:
        """Test a Shopify failure is recorded, not raised."""
        service = JobService()
        job = await service.submit_sync(db_session, store.id, StubWorker())

        with patch(
            "app.features.stores.sync.SyncService.sync_store",
            new=AsyncMock(side_effect=ExternalServiceError(message="Shopify request failed")),
        ):
            finished = await service.execute_job(db_session, job.job_id)

        assert finished is not None
        assert finished.status == JobStatus.FAILED
        assert finished.error_type == "ExternalServiceError"
        assert finished.error_message == "Shopify request failed"
        assert finished.result is None

    async def test_cancelled_job_is_skipped(self, db_session: AsyncSession, store: Store) -> None:
        """Test a job cancelled while queued never runs."""
        service = JobService()
        job = await service.submit_sync(db_session, store.id, StubWorker())
        await service.cancel_job(db_session, job.job_id)

        sync_store = AsyncMock()
        with patch("app.features.stores.sync.SyncService.sync_store", new=sync_store):
            finished = await service.execute_job(db_session, job.job_id)

        assert finished is not None
        assert finished.status == JobStatus.CANCELLED
        sync_store.assert_not_awaited()

    async def test_cancel_completed_job_conflicts(
        self, db_session: AsyncSession, store: Store
    ) -> None:
        """Test only pending jobs can be cancelled."""
        service = JobService()
        job = await service.submit_sync(db_session, store.id, StubWorker())
        with patch(
            "app.features.stores.sync.SyncService.sync_store",
            new=AsyncMock(return_value=SyncResult()),
        ):
            await service.execute_job(db_session, job.job_id)

        with pytest.raises(ConflictError):
            await service.cancel_job(db_session, job.job_id)


class TestListJobs:
    """Tests for JobService.list_jobs."""

    async def test_filters_by_store(self, db_session: AsyncSession, store: Store) -> None:
        """Test store_id narrows the listing."""
        service = JobService()
        await service.submit_sync(db_session, store.id, StubWorker())
        await service.submit_sync(db_session, store.id, StubWorker())

        listing = await service.list_jobs(db_session, store_id=store.id)
        other = await service.list_jobs(db_session, store_id=store.id + 1)

        assert listing.total == 2
        assert other.total == 0
