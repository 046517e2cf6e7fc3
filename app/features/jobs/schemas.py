"""Pydantic schemas for job endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.features.jobs.models import JobStatus, JobType

# =============================================================================
# Job Response Schemas
# =============================================================================


class JobResponse(BaseModel):
    """Response schema for a single job."""

    model_config = ConfigDict(from_attributes=True)

    job_id: str = Field(
        ...,
        description="Unique job identifier (32-char hex). Use for polling status.",
    )
    job_type: JobType = Field(..., description="Type of job: 'store_sync'.")
    status: JobStatus = Field(
        ...,
        description="Current job status: 'pending', 'running', 'completed', 'failed', or 'cancelled'.",
    )
    store_id: int | None = Field(None, description="Store the job operates on.")
    params: dict[str, Any] = Field(
        default_factory=dict,
        description="Job configuration parameters as submitted.",
    )
    result: dict[str, Any] | None = Field(
        None,
        description="Job result (null until completed). For store_sync: record counts.",
    )
    error_message: str | None = Field(
        None,
        description="Error details if status='failed'.",
    )
    error_type: str | None = Field(
        None,
        description="Exception class name if status='failed'.",
    )
    started_at: datetime | None = Field(
        None,
        description="When job execution started. Null if still pending.",
    )
    completed_at: datetime | None = Field(
        None,
        description="When job finished. Null if still running or pending.",
    )
    created_at: datetime = Field(..., description="When job was created.")
    updated_at: datetime = Field(..., description="When job was last updated.")


# =============================================================================
# Job List Response
# =============================================================================


class JobListResponse(BaseModel):
    """Paginated list of jobs with filtering metadata."""

    jobs: list[JobResponse] = Field(
        ...,
        description="Array of job records for the current page.",
    )
    total: int = Field(..., ge=0, description="Total number of jobs matching the filters.")
    page: int = Field(..., ge=1, description="Current page number (1-indexed).")
    page_size: int = Field(..., ge=1, description="Number of jobs per page. Maximum is 100.")
