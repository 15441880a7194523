"""
Publishes benchmark output as a commit built through the git data API.

The API rejects a tree or commit without saying which blob it did not like,
so publishing searches for the bad blob by leaving out one file per attempt.
This assumes at most one bad blob per run.
"""
import asyncio
import logging
import os
import stat
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from ..clients.github import GitDataClient
from ..core.errors import PublishError, StepError
from ..core.process import ProcessRunner

logger = logging.getLogger(__name__)

CREATED = 201
OK = 200


@dataclass(frozen=True)
class ChangedFile:
    """A path from the diff; `blob_id` is None until uploaded, or for deletions."""
    path: str
    mode: str
    blob_id: Optional[str] = None
    deleted: bool = False

    def tree_entry(self) -> Dict[str, Any]:
        return {"path": self.path, "mode": self.mode, "type": "blob", "sha": self.blob_id}


@dataclass
class PublishAttempt:
    """One pass of the exclusion search."""
    excluded_index: int
    tree_id: Optional[str] = None
    commit_id: Optional[str] = None
    success: bool = False


class PublishStatus(str, Enum):
    NO_CHANGES = "no_changes"
    PUBLISHED = "published"
    EXHAUSTED = "exhausted"


@dataclass
class PublishOutcome:
    status: PublishStatus
    attempts: int = 0
    commit_id: Optional[str] = None
    excluded_path: Optional[str] = None


def git_file_mode(path: Path) -> str:
    """Map a file on disk to the mode git stores in trees."""
    st = os.lstat(path)
    if stat.S_ISLNK(st.st_mode):
        return "120000"
    if st.st_mode & stat.S_IXUSR:
        return "100755"
    return "100644"


class CommitPublisher:
    """Turns the changes since a recorded commit into a commit on the remote branch."""

    def __init__(
        self,
        runner: ProcessRunner,
        client: GitDataClient,
        retry_delay: float = 3.0,
        commit_message: str = "merge master and add benchmark results",
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.runner = runner
        self.client = client
        self.retry_delay = retry_delay
        self.commit_message = commit_message
        self._sleep = sleep

    async def publish(
        self,
        owner: str,
        repo: str,
        branch: str,
        before_sha: str,
        repo_path: Path,
    ) -> PublishOutcome:
        """
        Upload every file changed since `before_sha` and move `branch` to a
        new commit on top of it.

        Returns:
            PublishOutcome; EXHAUSTED when every exclusion was rejected

        Raises:
            StepError: git could not list changes or resolve the base tree
            PublishError: A blob could not be uploaded
        """
        repo_path = Path(repo_path)
        changed = await self.changed_files(before_sha, repo_path)
        if not changed:
            logger.info(f"No changes since {before_sha}; nothing to publish")
            return PublishOutcome(status=PublishStatus.NO_CHANGES)

        base_tree = await self._git_output(["git", "rev-parse", f"{before_sha}^{{tree}}"], repo_path, "base-tree")
        uploaded = await self.upload(owner, repo, changed, repo_path)
        return await self.search(owner, repo, branch, before_sha, base_tree, uploaded)

    async def changed_files(self, before_sha: str, repo_path: Path) -> List[ChangedFile]:
        # Unquoted paths, so non-ASCII names match the files on disk
        output = await self._git_output(
            ["git", "-c", "core.quotePath=false", "diff", "--name-only", before_sha], repo_path, "diff"
        )
        files = []
        for line in output.splitlines():
            path = line.strip()
            if not path:
                continue
            full_path = repo_path / path
            if full_path.is_dir() and not full_path.is_symlink():
                logger.warning(f"Skipping {path}: directories (e.g. submodules) are not published")
                continue
            if os.path.lexists(full_path):
                files.append(ChangedFile(path=path, mode=git_file_mode(full_path)))
            else:
                files.append(ChangedFile(path=path, mode="100644", deleted=True))
        return files

    async def upload(
        self,
        owner: str,
        repo: str,
        files: List[ChangedFile],
        repo_path: Path,
    ) -> List[ChangedFile]:
        """Create one blob per file; one at a time to keep payloads small."""
        uploaded = []
        for changed in files:
            if changed.deleted:
                uploaded.append(changed)
                continue

            full_path = repo_path / changed.path
            if changed.mode == "120000":
                content = os.readlink(full_path).encode()
            else:
                content = full_path.read_bytes()

            response = await self.client.create_blob(owner, repo, content)
            if response.status != CREATED or not response.sha:
                raise PublishError(f"failed to create blob for {changed.path}: {response.data}")
            uploaded.append(replace(changed, blob_id=response.sha))
        return uploaded

    async def search(
        self,
        owner: str,
        repo: str,
        branch: str,
        before_sha: str,
        base_tree: str,
        files: List[ChangedFile],
    ) -> PublishOutcome:
        """Try tree -> commit -> ref once per excluded file until one goes through."""
        attempts = 0
        for excluded_index in range(len(files)):
            await self._sleep(self.retry_delay)
            candidates = files[:excluded_index] + files[excluded_index + 1:]

            attempts += 1
            attempt = await self._attempt(owner, repo, branch, before_sha, base_tree, candidates, excluded_index)
            if attempt.success:
                excluded_path = files[excluded_index].path
                logger.info(
                    f"Published {attempt.commit_id} to {branch} without {excluded_path} "
                    f"(attempt {attempts} of {len(files)})"
                )
                return PublishOutcome(
                    status=PublishStatus.PUBLISHED,
                    attempts=attempts,
                    commit_id=attempt.commit_id,
                    excluded_path=excluded_path,
                )

        logger.warning(f"Every exclusion was rejected; {branch} was not updated")
        return PublishOutcome(status=PublishStatus.EXHAUSTED, attempts=attempts)

    async def _attempt(
        self,
        owner: str,
        repo: str,
        branch: str,
        before_sha: str,
        base_tree: str,
        candidates: List[ChangedFile],
        excluded_index: int,
    ) -> PublishAttempt:
        attempt = PublishAttempt(excluded_index=excluded_index)
        try:
            tree = await self.client.create_tree(
                owner, repo, [c.tree_entry() for c in candidates], base_tree
            )
            if tree.status != CREATED:
                return attempt
            attempt.tree_id = tree.sha

            commit = await self.client.create_commit(
                owner, repo, attempt.tree_id, [before_sha], self.commit_message
            )
            if commit.status != CREATED:
                return attempt
            attempt.commit_id = commit.sha

            ref = await self.client.update_ref(owner, repo, f"heads/{branch}", attempt.commit_id)
            if ref.status != OK:
                return attempt
        except httpx.HTTPError as e:
            logger.warning(f"Attempt excluding #{excluded_index} failed: {e}")
            return attempt

        attempt.success = True
        return attempt

    async def _git_output(self, command: List[str], repo_path: Path, step: str) -> str:
        result = await self.runner.exec(command, cwd=repo_path)
        if result.failed:
            raise StepError(result.stderr.strip() or f"exit code {result.exit_code}", step=step)
        return result.stdout.strip()
