"""
Brings the shared working tree of a repository to the tip of a candidate branch.
"""
import logging
from pathlib import Path
from typing import Iterable, List, Tuple

from ..core.errors import StepError
from ..core.process import ProcessRunner
from ..models.benchmark import JobConfig

logger = logging.getLogger(__name__)

# error: branch 'foo' not found.
BRANCH_NOT_FOUND_EXIT_CODE = 1


class BranchPreparer:
    """Clones, cleans and resets `<git_root>/<repo>` onto `origin/<branch>`."""

    def __init__(self, runner: ProcessRunner, git_root: Path, remote_url: str = "https://github.com"):
        self.runner = runner
        self.git_root = Path(git_root).resolve()
        self.remote_url = remote_url.rstrip("/")

    def repo_path(self, repo: str) -> Path:
        return self.git_root / repo

    def _steps(self, config: JobConfig) -> List[Tuple[str, List[str], Tuple[int, ...]]]:
        base, branch = config.base_branch, config.branch
        return [
            ("clean", ["git", "clean", "-fd"], ()),
            ("fetch-base", ["git", "fetch", "origin", base], ()),
            ("reset", ["git", "reset", "--hard"], ()),
            ("checkout-base", ["git", "checkout", base], ()),
            ("delete-branch", ["git", "branch", "-D", branch], (BRANCH_NOT_FOUND_EXIT_CODE,)),
            ("fetch-branch", ["git", "fetch", "origin", branch], ()),
            ("track-branch", ["git", "checkout", "--track", f"origin/{branch}"], ()),
            ("reset-branch", ["git", "reset", "--hard", f"origin/{branch}"], ()),
        ]

    async def prepare(self, config: JobConfig) -> Path:
        """
        Run the preparation steps in order, stopping at the first failure.

        Returns:
            Path of the working tree, checked out on a local branch tracking
            `origin/<branch>` with no local changes

        Raises:
            StepError: Named after the failing step, with its stderr
        """
        self.git_root.mkdir(parents=True, exist_ok=True)
        repo_path = self.repo_path(config.repo)

        if (repo_path / ".git").exists():
            logger.info(f"Reusing existing clone at {repo_path}")
        else:
            await self._run(
                "clone",
                ["git", "clone", f"{self.remote_url}/{config.owner}/{config.repo}", config.repo],
                cwd=self.git_root,
            )

        for step, command, allowed in self._steps(config):
            await self._run(step, command, cwd=repo_path, allowed_exit_codes=allowed)

        logger.info(f"{config.repo} is at origin/{config.branch}")
        return repo_path

    async def _run(self, step: str, command: List[str], cwd: Path, allowed_exit_codes: Iterable[int] = ()) -> None:
        result = await self.runner.exec(command, allowed_exit_codes=allowed_exit_codes, cwd=cwd)
        if result.failed:
            raise StepError(result.stderr.strip() or f"exit code {result.exit_code}", step=step)
