from pydantic import BaseModel, Field
from typing import List
from datetime import datetime

from .benchmark import Job


class JobResponse(BaseModel):
    job: Job = Field(..., description="The job and, once finished, its result")


class JobListResponse(BaseModel):
    jobs: List[Job] = Field(..., description="Jobs, newest first")
    total: int = Field(..., description="Number of jobs returned")


class HealthResponse(BaseModel):
    status: str = Field(..., description="Service status")
    busy: bool = Field(..., description="Whether a job currently holds the working tree")
    git_available: bool = Field(..., description="Whether the git executable was found")
    timestamp: datetime = Field(default_factory=datetime.now)
