"""API routes for job monitoring.

Store syncs are submitted through ``POST /stores/{store_id}/sync``; these
endpoints expose their status, results and failures.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import NotFoundError
from app.core.logging import get_logger
from app.features.jobs.models import JobStatus, JobType
from app.features.jobs.schemas import JobListResponse, JobResponse
from app.features.jobs.service import JobService

logger = get_logger(__name__)

router = APIRouter(prefix="/jobs", tags=["jobs"])


# =============================================================================
# Job Listing
# =============================================================================


@router.get(
    "",
    response_model=JobListResponse,
    summary="List jobs",
    description="""
List jobs with pagination and optional filtering, newest first.

**Filtering**:
- `job_type`: Filter by job type (store_sync)
- `status`: Filter by status (pending, running, completed, failed, cancelled)
- `store_id`: Filter by store

**Example Use Cases**:
1. List all jobs: `GET /jobs`
2. Failed syncs: `GET /jobs?status=failed`
3. One store's history: `GET /jobs?store_id=1`
""",
)
async def list_jobs(
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(20, ge=1, le=100, description="Jobs per page (max 100)"),
    job_type: JobType | None = Query(None, description="Filter by job type"),
    status: JobStatus | None = Query(None, description="Filter by status"),
    store_id: int | None = Query(None, description="Filter by store ID"),
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
        Paginated list of jobs.
    """
    service = JobService()
    return await service.list_jobs(
        db=db,
        page=page,
        page_size=page_size,
        job_type=job_type,
        status=status,
        store_id=store_id,
    )


# =============================================================================
# Single Job Operations
# =============================================================================


@router.get(
    "/{job_id}",
    response_model=JobResponse,
    summary="Get job by ID",
    description="""
Get details for a specific job by its unique ID.

**Use Case**: Poll a store sync after `POST /stores/{store_id}/sync`.

**Response Fields**:
- `status`: Current status (pending, running, completed, failed, cancelled)
- `result`: Record counts written by the sync (null until completed)
- `error_message` / `error_type`: Failure details (if failed)

**Error Handling**:
- Returns 404 if job_id doesn't exist
""",
)
async def get_job(
    job_id: str,
    db: AsyncSession = Depends(get_db),
) -> JobResponse:
    """Get job details by ID.

    Raises:
        NotFoundError: If job not found.
    """
    service = JobService()
    result = await service.get_job(db=db, job_id=job_id)

    if result is None:
        raise NotFoundError(
            message=f"Job not found: {job_id}. Use GET /jobs to list available jobs.",
            details={"job_id": job_id},
        )

    return result


@router.delete(
    "/{job_id}",
    response_model=JobResponse,
    status_code=status.HTTP_200_OK,
    summary="Cancel a pending job",
    description="""
Cancel a job that is still in 'pending' status.

**Error Handling**:
- Returns 404 if job_id doesn't exist
- Returns 409 if job is not in pending status
""",
)
async def cancel_job(
    job_id: str,
    db: AsyncSession = Depends(get_db),
) -> JobResponse:
    """Cancel a pending job.

    Raises:
        NotFoundError: If job not found.
        ConflictError: If the job cannot be cancelled.
    """
    service = JobService()
    result = await service.cancel_job(db=db, job_id=job_id)

    if result is None:
        raise NotFoundError(
            message=f"Job not found: {job_id}. Use GET /jobs to list available jobs.",
            details={"job_id": job_id},
        )

    return result
