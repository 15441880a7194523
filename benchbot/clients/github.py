"""
Client for GitHub's low-level git data API (blobs, trees, commits, refs).

Commits created this way are signed by GitHub, so results can be pushed
without a signing key on the benchmark machine.
"""
import base64
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config.settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class GitDataResponse:
    """Status code and decoded body of one API call."""
    status: int
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def sha(self) -> Optional[str]:
        return self.data.get("sha")


class GitDataClient:
    """Async git data client; non-2xx statuses are returned, not raised."""

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = "https://api.github.com",
        timeout: float = 30,
        max_retries: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.max_retries = max(1, max_retries)
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "GitDataClient":
        return cls(
            token=settings.github_token,
            base_url=settings.github_api_url,
            timeout=settings.request_timeout,
            max_retries=settings.max_retries,
        )

    async def __aenter__(self) -> "GitDataClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, payload: Dict[str, Any]) -> GitDataResponse:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        ):
            with attempt:
                response = await self._client.request(method, url, json=payload)

        try:
            data = response.json()
        except ValueError:
            data = {"message": response.text}
        if not isinstance(data, dict):
            data = {"data": data}

        if not response.is_success:
            logger.warning(f"{method} {url} returned {response.status_code}: {data.get('message', '')}")
        return GitDataResponse(status=response.status_code, data=data)

    async def create_blob(self, owner: str, repo: str, content: bytes) -> GitDataResponse:
        """Upload file contents; base64 keeps binary files intact."""
        return await self._request(
            "POST",
            f"/repos/{owner}/{repo}/git/blobs",
            {"content": base64.b64encode(content).decode("ascii"), "encoding": "base64"},
        )

    async def create_tree(
        self,
        owner: str,
        repo: str,
        entries: List[Dict[str, Any]],
        base_tree: str,
    ) -> GitDataResponse:
        return await self._request(
            "POST",
            f"/repos/{owner}/{repo}/git/trees",
            {"tree": entries, "base_tree": base_tree},
        )

    async def create_commit(
        self,
        owner: str,
        repo: str,
        tree: str,
        parents: List[str],
        message: str,
    ) -> GitDataResponse:
        return await self._request(
            "POST",
            f"/repos/{owner}/{repo}/git/commits",
            {"tree": tree, "parents": parents, "message": message},
        )

    async def update_ref(self, owner: str, repo: str, ref: str, sha: str) -> GitDataResponse:
        """Point `ref` (e.g. heads/my-branch) at `sha`; 200 on success."""
        return await self._request(
            "PATCH",
            f"/repos/{owner}/{repo}/git/refs/{ref}",
            {"sha": sha},
        )
