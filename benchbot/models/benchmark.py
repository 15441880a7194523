"""
Pydantic models for benchmark jobs and their results.
"""
import re
from datetime import datetime
from typing import Optional
from enum import Enum
from pydantic import BaseModel, Field, field_validator, model_validator
import uuid


# Plain git ref / GitHub path tokens; never an option and never whitespace.
_NAME_PATTERN = re.compile(r"^[A-Za-z0-9._][A-Za-z0-9._/-]*$")


class RepoKind(str, Enum):
    """Repositories the bot knows how to benchmark."""
    SUBSTRATE = "substrate"
    POLKADOT = "polkadot"


class NodeBenchmark(str, Enum):
    """Node import benchmarks run through node-bench."""
    IMPORT = "import"
    IMPORT_SMALL = "import/small"
    IMPORT_LARGE = "import/large"
    IMPORT_FULL_WASM = "import/full-wasm"
    IMPORT_WASM = "import/wasm"
    ED25519 = "ed25519"


class RuntimeSelector(str, Enum):
    """First word of a runtime benchmark command."""
    PALLET = "pallet"
    SUBSTRATE = "substrate"
    POLKADOT = "polkadot"
    KUSAMA = "kusama"
    WESTEND = "westend"
    CUSTOM = "custom"


class JobKind(str, Enum):
    """Which workflow a job runs."""
    BENCH = "bench"
    RUNTIME = "runtime"


class JobStatus(str, Enum):
    """Status of a job."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class JobConfig(BaseModel):
    """Everything a single job needs to know; never changes while it runs."""
    model_config = {"frozen": True}

    owner: str
    repo: str
    base_branch: str = "master"
    branch: str
    benchmark_id: Optional[str] = None  # node benchmark name, bench jobs only
    extra: Optional[str] = None  # "<selector> <args>", runtime jobs only

    @field_validator("owner", "repo", "base_branch", "branch")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not _NAME_PATTERN.match(value) or ".." in value:
            raise ValueError(f"invalid name: {value!r}")
        return value

    @model_validator(mode="after")
    def _check_branches(self) -> "JobConfig":
        if self.branch == self.base_branch:
            raise ValueError(f"branch must differ from base branch {self.base_branch!r}")
        return self


class JobResult(BaseModel):
    """Either a rendered report or the step that failed and why."""
    success: bool
    report: Optional[str] = None
    step: Optional[str] = None
    diagnostic: Optional[str] = None

    @classmethod
    def ok(cls, report: str) -> "JobResult":
        return cls(success=True, report=report)

    @classmethod
    def failed(cls, step: str, diagnostic: str) -> "JobResult":
        return cls(success=False, step=step, diagnostic=diagnostic)


class Job(BaseModel):
    """A submitted benchmark job."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    kind: JobKind
    status: JobStatus = JobStatus.PENDING
    config: JobConfig
    result: Optional[JobResult] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
