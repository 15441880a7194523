import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Tuple

from benchbot.clients.github import GitDataResponse
from benchbot.core.process import CommandResult

Response = Tuple[str, str, int]


def strip_git_config(argv: Sequence[str]) -> List[str]:
    """Drop `-c key=value` pairs after `git` so lookups ignore identity flags."""
    argv = list(argv)
    if not argv or argv[0] != "git":
        return argv
    stripped = ["git"]
    i = 1
    while i < len(argv):
        if argv[i] == "-c":
            i += 2
            continue
        stripped.append(argv[i])
        i += 1
    return stripped


class FakeRunner:
    """Records commands and answers them from a prefix table."""

    def __init__(self, responses: Optional[Dict[Tuple[str, ...], Response]] = None):
        self.responses = responses or {}
        self.commands: List[List[str]] = []
        self.cwds: List[Optional[Path]] = []

    async def exec(self, command, label=None, allowed_exit_codes=(), cwd=None) -> CommandResult:
        argv = strip_git_config(command)
        self.commands.append(argv)
        self.cwds.append(cwd)
        stdout, stderr, code = self._lookup(argv)
        failed = code != 0 and code not in set(allowed_exit_codes)
        return CommandResult(stdout=stdout, stderr=stderr, exit_code=code, failed=failed)

    def _lookup(self, argv: List[str]) -> Response:
        best: Optional[Tuple[str, ...]] = None
        for prefix in self.responses:
            if tuple(argv[:len(prefix)]) == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        if best is None:
            return "", "", 0
        return self.responses[best]


class FakeGitDataClient:
    """In-memory git data API; trees containing a poisoned blob are rejected."""

    def __init__(
        self,
        poisoned: Optional[Set[str]] = None,
        blob_status: int = 201,
        tree_status: int = 201,
        commit_status: int = 201,
        ref_status: int = 200,
    ):
        self.poisoned = poisoned or set()
        self.blob_status = blob_status
        self.tree_status = tree_status
        self.commit_status = commit_status
        self.ref_status = ref_status
        self.blobs: List[bytes] = []
        self.trees: List[List[dict]] = []
        self.commits: List[dict] = []
        self.refs: List[Tuple[str, str]] = []
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.closed = True

    async def create_blob(self, owner, repo, content):
        self.blobs.append(content)
        if self.blob_status != 201:
            return GitDataResponse(status=self.blob_status, data={"message": "blob rejected"})
        return GitDataResponse(status=201, data={"sha": f"blob{len(self.blobs) - 1}"})

    async def create_tree(self, owner, repo, entries, base_tree):
        self.trees.append(entries)
        if self.tree_status != 201 or any(e["sha"] in self.poisoned for e in entries):
            return GitDataResponse(status=422, data={"message": "tree rejected"})
        return GitDataResponse(status=201, data={"sha": f"tree{len(self.trees) - 1}"})

    async def create_commit(self, owner, repo, tree, parents, message):
        self.commits.append({"tree": tree, "parents": parents, "message": message})
        if self.commit_status != 201:
            return GitDataResponse(status=self.commit_status, data={"message": "commit rejected"})
        return GitDataResponse(status=201, data={"sha": f"commit{len(self.commits) - 1}"})

    async def update_ref(self, owner, repo, ref, sha):
        self.refs.append((ref, sha))
        return GitDataResponse(status=self.ref_status, data={})


class RecordingSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", "-c", "user.name=Test", "-c", "user.email=test@test.com", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()
