from pydantic import BaseModel, Field
from typing import Optional


class BenchRequest(BaseModel):
    owner: str = Field(..., description="Repository owner on GitHub")
    repo: str = Field(..., description="Repository name (e.g., substrate)")
    base_branch: str = Field("master", description="Branch the candidate is compared against")
    branch: str = Field(..., description="Candidate branch to benchmark")
    id: Optional[str] = Field(None, description="Node benchmark to run (e.g., import/small)")


class RuntimeBenchRequest(BaseModel):
    owner: str = Field(..., description="Repository owner on GitHub")
    repo: str = Field(..., description="Repository name (substrate or polkadot)")
    base_branch: str = Field("master", description="Branch merged into the candidate before benchmarking")
    branch: str = Field(..., description="Candidate branch to benchmark and publish to")
    extra: str = Field(..., description="Selector followed by its arguments (e.g., pallet pallet_balances)")
