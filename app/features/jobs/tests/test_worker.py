"""Tests for the in-process job worker.

A fake session maker stands in for the database, so no PostgreSQL is needed.
"""

import asyncio
from contextlib import asynccontextmanager
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from app.core.config import Settings
from app.core.exceptions import ServiceUnavailableError
from app.features.jobs.worker import JobWorker, get_job_worker


class FakeSession:
    """Marker object passed to the runner in place of an AsyncSession."""


def fake_session_maker():
    @asynccontextmanager
    async def session():
        yield FakeSession()

    return session


class RecordingRunner:
    """Runner recording executed job ids; raises for ids listed in ``fail``."""

    def __init__(self, fail: set[str] | None = None) -> None:
        self.executed: list[str] = []
        self.fail = fail or set()

    async def __call__(self, db, job_id: str) -> None:
        assert isinstance(db, FakeSession)
        if job_id in self.fail:
            raise RuntimeError(f"boom: {job_id}")
        self.executed.append(job_id)


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
async def worker(runner: RecordingRunner):
    """A started worker with one task."""
    job_worker = JobWorker(
        runner=runner,
        session_maker=fake_session_maker(),
        settings=Settings(jobs_worker_concurrency=1, jobs_queue_maxsize=10),
    )
    await job_worker.start()
    yield job_worker
    await job_worker.stop()


class TestJobWorker:
    """Tests for JobWorker lifecycle and execution."""

    async def test_runs_submitted_jobs_in_order(
        self, worker: JobWorker, runner: RecordingRunner
    ) -> None:
        """Test queued job ids reach the runner in submission order."""
        worker.submit("job-1")
        worker.submit("job-2")

        await asyncio.wait_for(worker.join(), timeout=2)

        assert runner.executed == ["job-1", "job-2"]
        assert worker.pending == 0

    async def test_runner_failure_does_not_stop_worker(self) -> None:
        """Test a failing job is logged and the next job still runs."""
        runner = RecordingRunner(fail={"bad"})
        job_worker = JobWorker(
            runner=runner,
            session_maker=fake_session_maker(),
            settings=Settings(jobs_worker_concurrency=1, jobs_queue_maxsize=10),
        )
        await job_worker.start()
        try:
            job_worker.submit("bad")
            job_worker.submit("good")
            await asyncio.wait_for(job_worker.join(), timeout=2)

            assert runner.executed == ["good"]
            assert job_worker.is_running
        finally:
            await job_worker.stop()

    async def test_submit_when_stopped_raises(self, runner: RecordingRunner) -> None:
        """Test submitting to a stopped worker is a 503."""
        job_worker = JobWorker(runner=runner, session_maker=fake_session_maker())

        with pytest.raises(ServiceUnavailableError) as exc_info:
            job_worker.submit("job-1")

        assert exc_info.value.status_code == 503
        assert exc_info.value.details == {"job_id": "job-1"}

    async def test_submit_when_queue_full_raises(self) -> None:
        """Test a full queue rejects new jobs."""
        release = asyncio.Event()

        async def blocking_runner(db, job_id: str) -> None:
            await release.wait()

        job_worker = JobWorker(
            runner=blocking_runner,
            session_maker=fake_session_maker(),
            settings=Settings(jobs_worker_concurrency=1, jobs_queue_maxsize=1),
        )
        await job_worker.start()
        try:
            job_worker.submit("running")
            # Let the worker pick up the first job so the queue has room for one
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            job_worker.submit("queued")

            with pytest.raises(ServiceUnavailableError, match="queue is full"):
                job_worker.submit("overflow")
        finally:
            release.set()
            await job_worker.stop()

    async def test_start_is_idempotent(self, worker: JobWorker) -> None:
        """Test starting twice keeps the same tasks."""
        tasks = list(worker._tasks)

        await worker.start()

        assert worker._tasks == tasks

    async def test_stop_marks_not_running(self, runner: RecordingRunner) -> None:
        """Test stop cancels worker tasks."""
        job_worker = JobWorker(runner=runner, session_maker=fake_session_maker())
        await job_worker.start()
        assert job_worker.is_running

        await job_worker.stop()

        assert not job_worker.is_running

    async def test_default_session_maker_resolved_on_start(self, runner: RecordingRunner) -> None:
        """Test a worker built without a session factory uses the process-wide one."""
        job_worker = JobWorker(
            runner=runner, settings=Settings(jobs_worker_concurrency=1, jobs_queue_maxsize=10)
        )
        with patch(
            "app.features.jobs.worker.get_session_maker", return_value=fake_session_maker()
        ) as get_maker:
            await job_worker.start()
        try:
            job_worker.submit("job-1")
            await asyncio.wait_for(job_worker.join(), timeout=2)

            get_maker.assert_called_once_with()
            assert runner.executed == ["job-1"]
        finally:
            await job_worker.stop()


class TestGetJobWorker:
    """Tests for the get_job_worker dependency."""

    def test_returns_app_worker(self) -> None:
        """Test the worker on app.state is returned."""
        job_worker = JobWorker(session_maker=fake_session_maker())
        request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(job_worker=job_worker)))

        assert get_job_worker(request) is job_worker

    def test_missing_worker_raises(self) -> None:
        """Test a missing worker is a 503."""
        request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace()))

        with pytest.raises(ServiceUnavailableError):
            get_job_worker(request)
