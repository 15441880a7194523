"""Tests for GitDataClient using httpx.MockTransport."""

import base64
import json

import httpx
import pytest

from benchbot.clients.github import GitDataClient


def make_client(handler, **kwargs) -> GitDataClient:
    return GitDataClient(token="secret", transport=httpx.MockTransport(handler), **kwargs)


class TestRequests:
    """Test request shapes."""

    @pytest.mark.asyncio
    async def test_create_blob_sends_base64(self) -> None:
        """Should base64-encode content and authenticate."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"sha": "abc"})

        async with make_client(handler) as client:
            response = await client.create_blob("paritytech", "substrate", b"\x00weights")

        assert response.status == 201
        assert response.sha == "abc"
        assert seen["method"] == "POST"
        assert seen["path"] == "/repos/paritytech/substrate/git/blobs"
        assert seen["auth"] == "Bearer secret"
        assert seen["body"]["encoding"] == "base64"
        assert base64.b64decode(seen["body"]["content"]) == b"\x00weights"

    @pytest.mark.asyncio
    async def test_create_tree_and_commit(self) -> None:
        """Should pass entries with the base tree, then tree and parents."""
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append((request.url.path, json.loads(request.content)))
            return httpx.Response(201, json={"sha": "new"})

        entries = [{"path": "a.rs", "mode": "100644", "type": "blob", "sha": "blob0"}]
        async with make_client(handler) as client:
            await client.create_tree("o", "r", entries, "base")
            await client.create_commit("o", "r", "new", ["before"], "add results")

        assert bodies[0] == ("/repos/o/r/git/trees", {"tree": entries, "base_tree": "base"})
        assert bodies[1] == (
            "/repos/o/r/git/commits",
            {"tree": "new", "parents": ["before"], "message": "add results"},
        )

    @pytest.mark.asyncio
    async def test_update_ref_uses_patch(self) -> None:
        """Should PATCH the ref path."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"ref": "refs/heads/feature"})

        async with make_client(handler) as client:
            response = await client.update_ref("o", "r", "heads/feature", "commit0")

        assert response.status == 200
        assert seen == {
            "method": "PATCH",
            "path": "/repos/o/r/git/refs/heads/feature",
            "body": {"sha": "commit0"},
        }


class TestErrors:
    """Test failure handling."""

    @pytest.mark.asyncio
    async def test_error_status_is_returned(self) -> None:
        """Should hand back rejected calls instead of raising."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(422, json={"message": "GitRPC::BadObjectState"})

        async with make_client(handler) as client:
            response = await client.create_tree("o", "r", [], "base")

        assert response.status == 422
        assert response.sha is None
        assert response.data["message"] == "GitRPC::BadObjectState"

    @pytest.mark.asyncio
    async def test_non_json_body(self) -> None:
        """Should keep the text of bodies that are not JSON."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        async with make_client(handler) as client:
            response = await client.create_blob("o", "r", b"")

        assert response.status == 502
        assert response.data == {"message": "Bad Gateway"}

    @pytest.mark.asyncio
    async def test_retries_transport_errors(self) -> None:
        """Should retry a dropped connection and return the next response."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("connection reset", request=request)
            return httpx.Response(201, json={"sha": "abc"})

        async with make_client(handler, max_retries=2) as client:
            response = await client.create_blob("o", "r", b"data")

        assert len(calls) == 2
        assert response.sha == "abc"

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self) -> None:
        """Should re-raise once the attempts are used up."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler, max_retries=1) as client:
            with pytest.raises(httpx.ConnectError):
                await client.create_blob("o", "r", b"data")

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_no_token_no_auth_header(self) -> None:
        """Should omit Authorization without a token."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(201, json={"sha": "abc"})

        async with GitDataClient(transport=httpx.MockTransport(handler)) as client:
            await client.create_blob("o", "r", b"")

        assert seen["auth"] is None
