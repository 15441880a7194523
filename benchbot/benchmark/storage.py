"""
SQLite storage layer for benchmark jobs.
Uses aiosqlite for async database operations.
"""
import logging
import aiosqlite
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ..models.benchmark import Job, JobConfig, JobKind, JobResult, JobStatus

logger = logging.getLogger(__name__)


class Storage:
    """Async SQLite storage for jobs."""

    def __init__(self, db_path: str = "benchbot.db"):
        # Resolve once so a later chdir can't point us at another file
        self.db_path = Path(db_path).resolve()
        self._initialized = False

    @asynccontextmanager
    async def _get_db(self):
        """Get database connection with row factory. Auto-initializes on first use."""
        if not self._initialized:
            await self.initialize()

        async with aiosqlite.connect(self.db_path, timeout=30.0) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA journal_mode=WAL")
            await db.execute("PRAGMA busy_timeout=30000")
            yield db

    async def initialize(self):
        """Create tables if they don't exist."""
        if self._initialized:
            return

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS jobs (
                    id TEXT PRIMARY KEY,
                    kind TEXT NOT NULL,
                    status TEXT DEFAULT 'pending',
                    config TEXT NOT NULL,
                    result TEXT,
                    created_at TEXT NOT NULL,
                    started_at TEXT,
                    completed_at TEXT
                )
            """)
            await db.execute("CREATE INDEX IF NOT EXISTS idx_jobs_created ON jobs(created_at)")
            await db.commit()

        self._initialized = True
        logger.info(f"Job database ready at {self.db_path}")

    async def create_job(self, job: Job) -> Job:
        """Insert a new job."""
        async with self._get_db() as db:
            await db.execute("""
                INSERT INTO jobs (id, kind, status, config, result, created_at, started_at, completed_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, self._job_values(job))
            await db.commit()
        return job

    async def get_job(self, job_id: str) -> Optional[Job]:
        """Get job by ID."""
        async with self._get_db() as db:
            cursor = await db.execute("SELECT * FROM jobs WHERE id = ?", (job_id,))
            row = await cursor.fetchone()
            if row:
                return self._row_to_job(row)
        return None

    async def list_jobs(self, limit: int = 100, offset: int = 0) -> List[Job]:
        """List jobs, newest first."""
        async with self._get_db() as db:
            cursor = await db.execute(
                "SELECT * FROM jobs ORDER BY created_at DESC LIMIT ? OFFSET ?",
                (limit, offset)
            )
            rows = await cursor.fetchall()
            return [self._row_to_job(row) for row in rows]

    async def update_job(self, job: Job) -> None:
        """Store status, result and timestamps of a job."""
        async with self._get_db() as db:
            await db.execute("""
                UPDATE jobs SET
                    status = ?,
                    result = ?,
                    started_at = ?,
                    completed_at = ?
                WHERE id = ?
            """, (
                job.status.value,
                job.result.model_dump_json() if job.result else None,
                job.started_at.isoformat() if job.started_at else None,
                job.completed_at.isoformat() if job.completed_at else None,
                job.id,
            ))
            await db.commit()

    def _job_values(self, job: Job) -> tuple:
        return (
            job.id,
            job.kind.value,
            job.status.value,
            job.config.model_dump_json(),
            job.result.model_dump_json() if job.result else None,
            job.created_at.isoformat(),
            job.started_at.isoformat() if job.started_at else None,
            job.completed_at.isoformat() if job.completed_at else None,
        )

    def _row_to_job(self, row: aiosqlite.Row) -> Job:
        """Convert database row to Job model."""
        return Job(
            id=row["id"],
            kind=JobKind(row["kind"]),
            status=JobStatus(row["status"]),
            config=JobConfig.model_validate_json(row["config"]),
            result=JobResult.model_validate_json(row["result"]) if row["result"] else None,
            created_at=datetime.fromisoformat(row["created_at"]),
            started_at=datetime.fromisoformat(row["started_at"]) if row["started_at"] else None,
            completed_at=datetime.fromisoformat(row["completed_at"]) if row["completed_at"] else None,
        )
