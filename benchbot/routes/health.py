import shutil

from fastapi import APIRouter

from ..benchmark.scheduler import get_scheduler
from ..models.responses import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Report whether a job is running and git is usable"""
    git_available = shutil.which("git") is not None
    return HealthResponse(
        status="healthy" if git_available else "unhealthy",
        busy=get_scheduler().busy,
        git_available=git_available,
    )
