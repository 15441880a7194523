"""Tests for the SQLite job store."""

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from benchbot.benchmark.storage import Storage
from benchbot.models.benchmark import Job, JobConfig, JobKind, JobResult, JobStatus


@pytest.fixture
def storage(tmp_path: Path) -> Storage:
    return Storage(str(tmp_path / "db" / "jobs.db"))


def make_job(branch: str = "feature", **kwargs) -> Job:
    return Job(
        kind=JobKind.RUNTIME,
        config=JobConfig(owner="paritytech", repo="substrate", branch=branch, extra="pallet pallet_balances"),
        **kwargs,
    )


class TestJobs:
    """Test job persistence."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, storage: Storage) -> None:
        """Should read back what was written."""
        job = await storage.create_job(make_job())

        stored = await storage.get_job(job.id)

        assert stored == job
        assert stored.status == JobStatus.PENDING
        assert stored.result is None

    @pytest.mark.asyncio
    async def test_get_missing(self, storage: Storage) -> None:
        assert await storage.get_job("nope") is None

    @pytest.mark.asyncio
    async def test_update_stores_result(self, storage: Storage) -> None:
        """Should persist status, result and timestamps."""
        job = await storage.create_job(make_job())
        job.status = JobStatus.FAILED
        job.result = JobResult.failed("fetch-branch", "fatal: couldn't find remote ref")
        job.started_at = datetime.utcnow()
        job.completed_at = datetime.utcnow()

        await storage.update_job(job)
        stored = await storage.get_job(job.id)

        assert stored.status == JobStatus.FAILED
        assert stored.result == job.result
        assert stored.completed_at == job.completed_at

    @pytest.mark.asyncio
    async def test_list_newest_first(self, storage: Storage) -> None:
        """Should list newest jobs first and honour the limit."""
        now = datetime.utcnow()
        older = await storage.create_job(make_job("older", created_at=now - timedelta(minutes=5)))
        newer = await storage.create_job(make_job("newer", created_at=now))

        jobs = await storage.list_jobs()
        limited = await storage.list_jobs(limit=1)

        assert [j.id for j in jobs] == [newer.id, older.id]
        assert [j.id for j in limited] == [newer.id]
