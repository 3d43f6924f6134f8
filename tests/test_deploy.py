"""Tests for the deployment bridge."""

import json

import httpx
import pytest

from preview_core.deploy import DeploymentBridge
from preview_core.exceptions import DeploymentError

ENDPOINT = "https://deploy.test/api/deploy"


def _bridge(handler) -> DeploymentBridge:
    return DeploymentBridge(ENDPOINT, timeout=5, transport=httpx.MockTransport(handler))


class TestDeploymentBridge:
    """Tests for DeploymentBridge."""

    @pytest.mark.asyncio
    async def test_successful_deploy(self, sample_files, metrics) -> None:
        """Posts projectId, files and name; returns the URL."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={
                "success": True,
                "url": "https://demo.vercel.app",
                "repoUrl": "https://github.com/acme/demo",
            })

        result = await _bridge(handler).deploy("proj-1", "Demo", sample_files)

        assert result.url == "https://demo.vercel.app"
        assert result.repo_url == "https://github.com/acme/demo"
        assert requests[0].method == "POST"
        assert str(requests[0].url) == ENDPOINT
        body = json.loads(requests[0].content)
        assert body["projectId"] == "proj-1"
        assert body["name"] == "Demo"
        assert body["files"][0] == {"path": "src/app/page.tsx", "content": sample_files[0].content}
        assert ("deploy.success", 1.0, {}) in metrics

    @pytest.mark.asyncio
    async def test_endpoint_error_message(self, sample_files, metrics) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"success": False, "error": "Vercel token missing"})

        with pytest.raises(DeploymentError, match="Vercel token missing"):
            await _bridge(handler).deploy("proj-1", "Demo", sample_files)
        assert "deploy.error" in [name for name, _, _ in metrics]

    @pytest.mark.asyncio
    async def test_success_false_with_ok_status(self, sample_files) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": False, "error": "Build failed"})

        with pytest.raises(DeploymentError, match="Build failed"):
            await _bridge(handler).deploy(None, "Demo", sample_files)

    @pytest.mark.asyncio
    async def test_non_json_error(self, sample_files) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        with pytest.raises(DeploymentError, match="HTTP 502"):
            await _bridge(handler).deploy("proj-1", "Demo", sample_files)

    @pytest.mark.asyncio
    async def test_missing_url(self, sample_files) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": True})

        with pytest.raises(DeploymentError, match="no URL"):
            await _bridge(handler).deploy("proj-1", "Demo", sample_files)

    @pytest.mark.asyncio
    async def test_transport_failure(self, sample_files) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(DeploymentError, match="connection refused"):
            await _bridge(handler).deploy("proj-1", "Demo", sample_files)

    @pytest.mark.asyncio
    async def test_requires_files_and_name(self, sample_files) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        bridge = _bridge(handler)
        with pytest.raises(DeploymentError, match="required"):
            await bridge.deploy("proj-1", "Demo", [])
        with pytest.raises(DeploymentError, match="required"):
            await bridge.deploy("proj-1", "", sample_files)
