"""
Benchmark job engine: scheduling, branch preparation, command building
and result publishing.
"""
from .storage import Storage
from .scheduler import SingleFlightScheduler, get_scheduler
from .branch import BranchPreparer
from .publisher import CommitPublisher, PublishOutcome, PublishStatus
from .collector import ResultCollector
from .orchestrator import JobOrchestrator, get_orchestrator

__all__ = [
    "Storage",
    "SingleFlightScheduler",
    "get_scheduler",
    "BranchPreparer",
    "CommitPublisher",
    "PublishOutcome",
    "PublishStatus",
    "ResultCollector",
    "JobOrchestrator",
    "get_orchestrator",
]
