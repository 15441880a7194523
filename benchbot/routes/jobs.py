"""
API endpoints for benchmark jobs.
"""
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from ..benchmark.orchestrator import JobOrchestrator, get_orchestrator
from ..benchmark.storage import Storage
from ..config.settings import get_settings
from ..models.benchmark import Job, JobConfig, JobKind
from ..models.requests import BenchRequest, RuntimeBenchRequest
from ..models.responses import JobListResponse, JobResponse


router = APIRouter(prefix="/jobs", tags=["jobs"])

# Global instances
_storage: Optional[Storage] = None


def get_storage() -> Storage:
    global _storage
    if _storage is None:
        _storage = Storage(get_settings().database_path)
    return _storage


def get_job_orchestrator(storage: Storage = Depends(get_storage)) -> JobOrchestrator:
    return get_orchestrator(storage)


async def _submit(
    kind: JobKind,
    config: JobConfig,
    background_tasks: BackgroundTasks,
    storage: Storage,
    orchestrator: JobOrchestrator,
) -> JobResponse:
    job = await storage.create_job(Job(kind=kind, config=config))
    background_tasks.add_task(orchestrator.run, job)
    return JobResponse(job=job)


def _config(**fields) -> JobConfig:
    try:
        return JobConfig(**fields)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/bench", response_model=JobResponse)
async def submit_bench(
    request: BenchRequest,
    background_tasks: BackgroundTasks,
    storage: Storage = Depends(get_storage),
    orchestrator: JobOrchestrator = Depends(get_job_orchestrator),
):
    """Queue a node benchmark comparing the base branch with the candidate."""
    config = _config(
        owner=request.owner,
        repo=request.repo,
        base_branch=request.base_branch,
        branch=request.branch,
        benchmark_id=request.id,
    )
    return await _submit(JobKind.BENCH, config, background_tasks, storage, orchestrator)


@router.post("/runtime", response_model=JobResponse)
async def submit_runtime(
    request: RuntimeBenchRequest,
    background_tasks: BackgroundTasks,
    storage: Storage = Depends(get_storage),
    orchestrator: JobOrchestrator = Depends(get_job_orchestrator),
):
    """Queue a runtime benchmark; weight files it writes are pushed to the branch."""
    config = _config(
        owner=request.owner,
        repo=request.repo,
        base_branch=request.base_branch,
        branch=request.branch,
        extra=request.extra,
    )
    return await _submit(JobKind.RUNTIME, config, background_tasks, storage, orchestrator)


@router.get("", response_model=JobListResponse)
async def list_jobs(limit: int = 100, offset: int = 0, storage: Storage = Depends(get_storage)):
    """List jobs, newest first."""
    jobs = await storage.list_jobs(limit, offset)
    return JobListResponse(jobs=jobs, total=len(jobs))


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: str, storage: Storage = Depends(get_storage)):
    """Get a job and its result."""
    job = await storage.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobResponse(job=job)
