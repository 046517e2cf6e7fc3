"""Service layer for job operations.

Provides job submission, execution, and tracking. Jobs are created on the
request path and executed later by the ``JobWorker``; the job row records
the outcome.

CRITICAL: All job operations are logged for auditability.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.exceptions import ConflictError, NotFoundError, ServiceUnavailableError
from app.core.logging import get_logger, store_id_ctx
from app.features.data_platform.models import Store
from app.features.jobs.models import (
    VALID_JOB_TRANSITIONS,
    Job,
    JobStatus,
    JobType,
)
from app.features.jobs.schemas import (
    JobListResponse,
    JobResponse,
)

if TYPE_CHECKING:
    from app.features.jobs.worker import JobWorker

logger = get_logger(__name__)


class JobService:
    """Service for managing background jobs."""

    def __init__(self) -> None:
        """Initialize job service."""
        self.settings = get_settings()

    async def submit_sync(
        self,
        db: AsyncSession,
        store_id: int,
        worker: JobWorker,
    ) -> JobResponse:
        """Create a pending store sync job and hand it to the worker.

        The job row is committed before it is queued so the worker's own
        session can see it.

        Args:
            db: Database session.
            store_id: Store to sync.
            worker: Running job worker.

        Returns:
            The pending job.

        Raises:
            NotFoundError: If the store does not exist.
            ServiceUnavailableError: If the worker cannot accept the job.
        """
        if await db.get(Store, store_id) is None:
            raise NotFoundError(
                message=f"Store not found: {store_id}",
                details={"store_id": store_id},
            )

        job = Job(
            job_id=uuid.uuid4().hex,
            job_type=JobType.STORE_SYNC.value,
            status=JobStatus.PENDING.value,
            store_id=store_id,
            params={"store_id": store_id},
        )
        db.add(job)
        await db.commit()
        await db.refresh(job)

        logger.info(
            "jobs.job_created",
            job_id=job.job_id,
            job_type=job.job_type,
            store_id=store_id,
        )

        try:
            worker.submit(job.job_id)
        except ServiceUnavailableError as e:
            job.status = JobStatus.FAILED.value
            job.error_message = e.message
            job.error_type = type(e).__name__
            job.completed_at = datetime.now(UTC)
            await db.commit()
            raise

        return self._to_response(job)

    async def get_job(
        self,
        db: AsyncSession,
        job_id: str,
    ) -> JobResponse | None:
        """Get job by ID.

        Args:
            db: Database session.
            job_id: Unique job identifier.

        Returns:
            Job response or None if not found.
        """
        job = await self._load(db, job_id)
        if job is None:
            return None
        return self._to_response(job)

    async def list_jobs(
        self,
        db: AsyncSession,
        page: int = 1,
        page_size: int = 20,
        job_type: JobType | None = None,
        status: JobStatus | None = None,
        store_id: int | None = None,
    ) -> JobListResponse:
        """List jobs with pagination and filtering.

        Args:
            db: Database session.
            page: Page number (1-indexed).
            page_size: Number of jobs per page.
            job_type: Filter by job type (optional).
            status: Filter by status (optional).
            store_id: Filter by store (optional).

        Returns:
            Paginated list of jobs, newest first.
        """
        stmt = select(Job)

        if job_type is not None:
            stmt = stmt.where(Job.job_type == job_type.value)
        if status is not None:
            stmt = stmt.where(Job.status == status.value)
        if store_id is not None:
            stmt = stmt.where(Job.store_id == store_id)

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await db.execute(count_stmt)).scalar_one()

        offset = (page - 1) * page_size
        stmt = stmt.order_by(Job.created_at.desc(), Job.id.desc()).offset(offset).limit(page_size)
        jobs = (await db.execute(stmt)).scalars().all()

        return JobListResponse(
            jobs=[self._to_response(job) for job in jobs],
            total=total,
            page=page,
            page_size=page_size,
        )

    async def cancel_job(
        self,
        db: AsyncSession,
        job_id: str,
    ) -> JobResponse | None:
        """Cancel a pending job.

        Args:
            db: Database session.
            job_id: Unique job identifier.

        Returns:
            Updated job response or None if not found.

        Raises:
            ConflictError: If the job is no longer pending.
        """
        job = await self._load(db, job_id)
        if job is None:
            return None

        current_status = JobStatus(job.status)
        if JobStatus.CANCELLED not in VALID_JOB_TRANSITIONS[current_status]:
            raise ConflictError(
                message=f"Cannot cancel job in status '{current_status.value}'",
                details={"job_id": job_id, "status": current_status.value},
            )

        job.status = JobStatus.CANCELLED.value
        job.completed_at = datetime.now(UTC)
        await db.commit()
        await db.refresh(job)

        logger.info("jobs.job_cancelled", job_id=job_id)

        return self._to_response(job)

    async def execute_job(
        self,
        db: AsyncSession,
        job_id: str,
    ) -> JobResponse | None:
        """Run a pending job and record its outcome.

        Jobs that are no longer pending (e.g. cancelled while queued) are
        left untouched. Failures are stored on the job, not raised.

        Args:
            db: Database session owned by the worker.
            job_id: Job to run.

        Returns:
            Final job state, or None if the job does not exist.
        """
        job = await self._load(db, job_id)
        if job is None:
            logger.warning("jobs.job_missing", job_id=job_id)
            return None
        if job.status != JobStatus.PENDING.value:
            logger.info("jobs.job_skipped", job_id=job_id, status=job.status)
            return self._to_response(job)

        job.status = JobStatus.RUNNING.value
        job.started_at = datetime.now(UTC)
        await db.commit()

        token = store_id_ctx.set(job.store_id)
        logger.info("jobs.job_started", job_id=job.job_id, job_type=job.job_type)

        try:
            result = await self._dispatch(db, job)
            await db.commit()

            job.status = JobStatus.COMPLETED.value
            job.result = result
            job.completed_at = datetime.now(UTC)

            logger.info(
                "jobs.job_completed",
                job_id=job.job_id,
                job_type=job.job_type,
                result=result,
            )

        except Exception as e:
            await db.rollback()
            job = await self._load(db, job_id) or job
            job.status = JobStatus.FAILED.value
            job.error_message = str(e)[:2000]  # Truncate to fit column
            job.error_type = type(e).__name__
            job.completed_at = datetime.now(UTC)

            logger.error(
                "jobs.sync_failed",
                job_id=job.job_id,
                job_type=job.job_type,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
        finally:
            store_id_ctx.reset(token)

        await db.commit()
        await db.refresh(job)

        return self._to_response(job)

    async def _dispatch(self, db: AsyncSession, job: Job) -> dict[str, Any]:
        job_type = JobType(job.job_type)
        if job_type == JobType.STORE_SYNC:
            # Import here to avoid circular imports
            from app.features.stores.sync import SyncService

            if job.store_id is None:
                msg = f"Job {job.job_id} has no store (store deleted?)"
                raise ValueError(msg)
            sync_result = await SyncService().sync_store(db, job.store_id)
            return sync_result.to_dict()

        msg = f"Unknown job type: {job_type}"
        raise ValueError(msg)

    @staticmethod
    async def _load(db: AsyncSession, job_id: str) -> Job | None:
        stmt = select(Job).where(Job.job_id == job_id)
        return (await db.execute(stmt)).scalar_one_or_none()

    def _to_response(self, job: Job) -> JobResponse:
        """Convert Job model to response schema.

        Args:
            job: Job ORM model.

        Returns:
            Job response schema.
        """
        return JobResponse(
            job_id=job.job_id,
            job_type=JobType(job.job_type),
            status=JobStatus(job.status),
            store_id=job.store_id,
            params=job.params or {},
            result=job.result,
            error_message=job.error_message,
            error_type=job.error_type,
            started_at=job.started_at,
            completed_at=job.completed_at,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )
