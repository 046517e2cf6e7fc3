"""Jobs module for background task orchestration.

This module tracks store sync jobs and runs them on an in-process worker.
"""

from app.features.jobs.models import Job, JobStatus, JobType
from app.features.jobs.routes import router
from app.features.jobs.schemas import JobListResponse, JobResponse
from app.features.jobs.service import JobService
from app.features.jobs.worker import JobWorker, get_job_worker

__all__ = [
    "Job",
    "JobListResponse",
    "JobResponse",
    "JobService",
    "JobStatus",
    "JobType",
    "JobWorker",
    "get_job_worker",
    "router",
]
