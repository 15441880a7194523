"""
Job orchestration for node and runtime benchmarks.
Serializes jobs, prepares the working tree, runs the benchmark and, for
runtime benchmarks that write weight files, publishes them to the branch.
"""
import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Optional

from ..clients.github import GitDataClient
from ..config.settings import Settings, get_settings
from ..core.errors import BenchmarkExecutionError, ConfigError, JobError, PublishError, StepError
from ..core.process import CommandResult, ProcessRunner
from ..models.benchmark import Job, JobConfig, JobKind, JobResult, JobStatus
from .branch import BranchPreparer
from .collector import ResultCollector
from .publisher import CommitPublisher, PublishStatus
from .scheduler import SingleFlightScheduler, get_scheduler
from .storage import Storage
from . import templates
from .templates import BenchmarkCommand

logger = logging.getLogger(__name__)

# Nothing to commit, working tree clean
NOTHING_TO_COMMIT_EXIT_CODE = 1


class JobOrchestrator:
    """Runs benchmark jobs one at a time against the shared working trees."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        runner: Optional[ProcessRunner] = None,
        scheduler: Optional[SingleFlightScheduler] = None,
        storage: Optional[Storage] = None,
        client_factory: Optional[Callable[[], GitDataClient]] = None,
        sleep: Callable[[float], Awaitable] = asyncio.sleep,
    ):
        self.settings = settings or get_settings()
        self.runner = runner or ProcessRunner(timeout=self.settings.command_timeout)
        self.scheduler = scheduler or get_scheduler(self.settings.lock_timeout)
        self.storage = storage
        self.preparer = BranchPreparer(
            self.runner,
            Path(self.settings.git_root),
            self.settings.git_remote_url,
        )
        self.client_factory = client_factory or (lambda: GitDataClient.from_settings(self.settings))
        self._sleep = sleep

    async def run(self, job: Job) -> Job:
        """Run a stored job and record its result."""
        job.status = JobStatus.RUNNING
        job.started_at = datetime.utcnow()
        if self.storage:
            await self.storage.update_job(job)

        if job.kind == JobKind.BENCH:
            result = await self.bench_branch(job.config)
        else:
            result = await self.benchmark_runtime(job.config)

        job.result = result
        job.status = JobStatus.COMPLETED if result.success else JobStatus.FAILED
        job.completed_at = datetime.utcnow()
        if self.storage:
            await self.storage.update_job(job)
        return job

    # ==================== Workflows ====================

    async def bench_branch(self, config: JobConfig) -> JobResult:
        """Compare a node benchmark on the base branch and the candidate branch."""
        try:
            command = templates.get_node_benchmark(config.repo, config.benchmark_id or "import")
        except ConfigError as e:
            return JobResult.failed(e.step, e.diagnostic)

        return await self._guarded(lambda: self._bench_branch(config, command))

    async def benchmark_runtime(self, config: JobConfig) -> JobResult:
        """Run a runtime benchmark and publish any weight files it writes."""
        try:
            command = self.runtime_command(config)
        except ConfigError as e:
            return JobResult.failed(e.step, e.diagnostic)

        return await self._guarded(lambda: self._benchmark_runtime(config, command))

    def runtime_command(self, config: JobConfig) -> BenchmarkCommand:
        """Turn `<selector> <args>` into a checked command; raises ConfigError."""
        words = (config.extra or "").strip().split(" ")
        if len(words) < 2:
            raise ConfigError("Incomplete command.")

        repo_kind = templates.parse_repo_kind(config.repo)
        selector = templates.parse_runtime_selector(words[0])
        raw_extra = " ".join(words[1:]).strip()

        command, missing = templates.build(repo_kind, selector, raw_extra)
        if missing:
            raise ConfigError(f"Missing required flags: {','.join(missing)}")
        return command

    async def _guarded(self, body: Callable[[], Awaitable[str]]) -> JobResult:
        try:
            report = await self.scheduler.run(body)
        except JobError as e:
            logger.warning(f"Job failed at step {e.step}: {e.diagnostic}")
            return JobResult.failed(e.step, e.diagnostic)
        except Exception as e:
            logger.exception("Unexpected error while running job")
            return JobResult.failed("unexpected", str(e))
        return JobResult.ok(report)

    async def _bench_branch(self, config: JobConfig, command: BenchmarkCommand) -> str:
        logger.info(f'Started benchmark "{command.title}."')
        collector = ResultCollector()
        repo_path = await self.preparer.prepare(config)

        await self._git("checkout-base", ["checkout", "--detach", f"origin/{config.base_branch}"], repo_path)
        base = await self._bench(command, repo_path, f"Benching base: {config.base_branch}...")
        collector.collect_base(base.stdout)

        await self._git("checkout-branch", ["checkout", config.branch], repo_path)
        await self._git("merge", ["merge", "--no-edit", f"origin/{config.base_branch}"], repo_path)
        branch = await self._bench(command, repo_path, f"Benching branch: {config.branch}...")
        collector.collect_branch(branch.stdout)

        return f"Benchmark: **{command.title}**\n\n" + collector.report()

    async def _benchmark_runtime(self, config: JobConfig, command: BenchmarkCommand) -> str:
        logger.info(f'Started runtime benchmark "{command.title}."')
        repo_path = await self.preparer.prepare(config)

        head = await self._git("rev-parse", ["rev-parse", "HEAD"], repo_path)
        before_sha = head.stdout.strip()
        logger.info(f"Branch SHA before bench: {before_sha}")

        await self._git("merge", ["merge", "--no-edit", f"origin/{config.base_branch}"], repo_path)
        result = await self._bench(command, repo_path, f"Benching branch: {config.branch}...")

        if command.writes_output:
            await self._git(
                "commit",
                ["commit", "-am", self.settings.commit_message],
                repo_path,
                allowed_exit_codes=(NOTHING_TO_COMMIT_EXIT_CODE,),
            )
            await self._publish(config, before_sha, repo_path)

        return (
            f"Benchmark: **{command.title}**\n\n"
            + command.text
            + "\n\n<details>\n<summary>Results</summary>\n\n"
            + (result.stdout if result.stdout else result.stderr)
            + "\n\n </details>"
        )

    async def _publish(self, config: JobConfig, before_sha: str, repo_path: Path) -> None:
        async with self.client_factory() as client:
            publisher = CommitPublisher(
                self.runner,
                client,
                retry_delay=self.settings.publish_retry_delay,
                commit_message=self.settings.commit_message,
                sleep=self._sleep,
            )
            outcome = await publisher.publish(config.owner, config.repo, config.branch, before_sha, repo_path)

        if outcome.status == PublishStatus.EXHAUSTED:
            raise PublishError(
                f"failed to update branch {config.branch} with the bench output "
                f"after {outcome.attempts} attempts"
            )

    # ==================== Steps ====================

    async def _git(
        self,
        step: str,
        args: List[str],
        repo_path: Path,
        allowed_exit_codes: Iterable[int] = (),
    ) -> CommandResult:
        command = [
            "git",
            "-c", f"user.name={self.settings.commit_author_name}",
            "-c", f"user.email={self.settings.commit_author_email}",
            *args,
        ]
        result = await self.runner.exec(
            command,
            label=f"git {' '.join(args)}",
            allowed_exit_codes=allowed_exit_codes,
            cwd=repo_path,
        )
        if result.failed:
            raise StepError(result.stderr.strip() or f"exit code {result.exit_code}", step=step)
        return result

    async def _bench(self, command: BenchmarkCommand, repo_path: Path, label: str) -> CommandResult:
        result = await self.runner.exec(command.argv, label=label, cwd=repo_path)
        if result.failed:
            raise BenchmarkExecutionError(result.stderr.strip() or f"exit code {result.exit_code}")
        return result


# Global orchestrator instance
_orchestrator: Optional[JobOrchestrator] = None


def get_orchestrator(storage: Optional[Storage] = None) -> JobOrchestrator:
    """Get or create the global orchestrator instance."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = JobOrchestrator(storage=storage)
    return _orchestrator
