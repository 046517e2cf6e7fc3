"""Job ORM model for background task tracking.

Store syncs run off the request path; the job row is the channel through
which their outcome (result counts or error) is observed.

CRITICAL: Uses PostgreSQL JSONB for flexible params and results.
"""

from __future__ import annotations

import datetime
from enum import Enum
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.shared.models import TimestampMixin


class JobType(str, Enum):
    """Types of jobs that can be executed.

    - STORE_SYNC: Pull orders, products and ShopifyQL analytics for a store
    """

    STORE_SYNC = "store_sync"


class JobStatus(str, Enum):
    """Job lifecycle states.

    State transitions:
    - PENDING -> RUNNING -> COMPLETED | FAILED
    - PENDING -> CANCELLED (via DELETE endpoint)
    - PENDING -> FAILED (queue rejected the job)
    """

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Valid state transitions for job status
VALID_JOB_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.PENDING: {JobStatus.RUNNING, JobStatus.CANCELLED, JobStatus.FAILED},
    JobStatus.RUNNING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),  # Terminal state
    JobStatus.FAILED: set(),  # Terminal state
    JobStatus.CANCELLED: set(),  # Terminal state
}


class Job(TimestampMixin, Base):
    """Background job tracking model.

    Attributes:
        id: Primary key.
        job_id: Unique external identifier (UUID hex, 32 chars).
        job_type: Type of job.
        status: Current lifecycle state.
        store_id: Store the job operates on (null once the store is deleted).
        params: Job configuration as JSONB.
        result: Job result as JSONB (null until completed).
        error_message: Error details if status=FAILED.
        error_type: Exception class name if status=FAILED.
        started_at: When job execution started.
        completed_at: When job finished (success or failure).
    """

    __tablename__ = "job"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    job_id: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    job_type: Mapped[str] = mapped_column(String(20), index=True)
    status: Mapped[str] = mapped_column(String(20), default=JobStatus.PENDING.value, index=True)
    store_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("store.id", ondelete="SET NULL"), nullable=True, index=True
    )

    params: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)

    # Result/error storage
    result: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    error_message: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    error_type: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Timing
    started_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_job_type_status", "job_type", "status"),
        CheckConstraint(
            "status IN ('pending', 'running', 'completed', 'failed', 'cancelled')",
            name="ck_job_valid_status",
        ),
        CheckConstraint(
            "job_type IN ('store_sync')",
            name="ck_job_valid_type",
        ),
    )
