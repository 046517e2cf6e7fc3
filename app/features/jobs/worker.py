"""In-process background worker for jobs.

An ``asyncio.Queue`` of job ids drained by a fixed number of worker tasks.
Started and stopped by the application lifespan; each job runs in its own
database session so it never shares a transaction with the request that
submitted it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import Settings, get_settings
from app.core.database import get_session_maker
from app.core.exceptions import ServiceUnavailableError
from app.core.logging import get_logger

logger = get_logger(__name__)

JobRunner = Callable[[AsyncSession, str], Awaitable[object]]


async def run_job(db: AsyncSession, job_id: str) -> object:
    """Default runner: execute the job through ``JobService``."""
    from app.features.jobs.service import JobService

    return await JobService().execute_job(db, job_id)


class JobWorker:
    """Queue-backed job executor.

    Args:
        runner: Coroutine executing one job in a session.
        session_maker: Session factory (defaults to the process-wide one).
        settings: Optional settings override.
    """

    def __init__(
        self,
        runner: JobRunner = run_job,
        session_maker: async_sessionmaker[AsyncSession] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.runner = runner
        self._session_maker = session_maker
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=self.settings.jobs_queue_maxsize)
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def is_running(self) -> bool:
        """True while worker tasks are alive."""
        return any(not task.done() for task in self._tasks)

    @property
    def pending(self) -> int:
        """Number of queued job ids not yet picked up."""
        return self._queue.qsize()

    async def start(self) -> None:
        """Start the worker tasks (idempotent)."""
        if self.is_running:
            return
        session_maker = self._session_maker or get_session_maker()
        self._session_maker = session_maker
        self._tasks = [
            asyncio.create_task(self._run(index, session_maker), name=f"job-worker-{index}")
            for index in range(self.settings.jobs_worker_concurrency)
        ]
        logger.info("jobs.worker_started", concurrency=len(self._tasks))

    async def stop(self) -> None:
        """Cancel worker tasks; queued jobs stay pending in the database."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("jobs.worker_stopped", pending=self.pending)

    def submit(self, job_id: str) -> None:
        """Queue a job id for execution.

        Raises:
            ServiceUnavailableError: If the worker is stopped or the queue is full.
        """
        if not self.is_running:
            raise ServiceUnavailableError(
                message="Job worker is not running",
                details={"job_id": job_id},
            )
        try:
            self._queue.put_nowait(job_id)
        except asyncio.QueueFull as e:
            raise ServiceUnavailableError(
                message="Job queue is full; retry later",
                details={"job_id": job_id, "queue_size": self._queue.maxsize},
            ) from e
        logger.info("jobs.job_queued", job_id=job_id, pending=self.pending)

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        await self._queue.join()

    async def _run(self, index: int, session_maker: async_sessionmaker[AsyncSession]) -> None:
        while True:
            job_id = await self._queue.get()
            try:
                async with session_maker() as db:
                    await self.runner(db, job_id)
            except Exception as e:
                # The runner records job failures itself; this is the last resort
                logger.error(
                    "jobs.worker_error",
                    worker=index,
                    job_id=job_id,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
            finally:
                self._queue.task_done()


def get_job_worker(request: Request) -> JobWorker:
    """Dependency returning the application's job worker.

    Raises:
        ServiceUnavailableError: If the application started without a worker.
    """
    worker: JobWorker | None = getattr(request.app.state, "job_worker", None)
    if worker is None:
        raise ServiceUnavailableError(message="Job worker is not configured")
    return worker
