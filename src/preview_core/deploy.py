"""Deployment bridge to the external deploy endpoint."""

from dataclasses import dataclass

import httpx

from preview_core.exceptions import DeploymentError
from preview_core.models import ProjectFile
from preview_core.observability import Timer, emit_counter, get_logger
from preview_core.utils.http import json_object

logger = get_logger(__name__)


@dataclass
class DeploymentResult:
    """Successful deployment."""

    url: str
    repo_url: str | None = None


class DeploymentBridge:
    """Ships the current file set to the deploy endpoint. No retries."""

    def __init__(
        self,
        endpoint: str,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize deployment bridge.

        Args:
            endpoint: Deploy endpoint URL
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests, proxies)
        """
        self.endpoint = endpoint
        self.timeout = timeout
        self._transport = transport

    async def deploy(
        self,
        project_id: str | None,
        name: str,
        files: list[ProjectFile],
    ) -> DeploymentResult:
        """Deploy a project.

        Args:
            project_id: Project identifier (may be None for unsaved projects)
            name: Project name
            files: Files to deploy

        Returns:
            The deployed URL

        Raises:
            DeploymentError: If the endpoint is unreachable or reports failure
        """
        if not files or not name:
            raise DeploymentError("Files and name are required")

        payload = {
            "projectId": project_id,
            "files": [f.to_dict() for f in files],
            "name": name,
        }

        with Timer("deploy.request") as timer:
            try:
                async with httpx.AsyncClient(
                    transport=self._transport,
                    timeout=self.timeout,
                ) as client:
                    response = await client.post(self.endpoint, json=payload)
            except httpx.HTTPError as e:
                emit_counter("deploy.error")
                raise DeploymentError(f"Deploy request failed: {e}") from e

        data = json_object(response)
        if not response.is_success or not data.get("success"):
            emit_counter("deploy.error")
            error = data.get("error") or f"Deployment failed (HTTP {response.status_code})"
            logger.warning(
                "Deployment failed",
                context={"project_id": project_id, "status": response.status_code},
            )
            raise DeploymentError(str(error))

        url = data.get("url")
        if not url:
            emit_counter("deploy.error")
            raise DeploymentError("Deploy endpoint returned no URL")

        logger.info(
            "Deployment succeeded",
            context={"project_id": project_id, "url": url, "files": len(files)},
            duration_ms=timer.duration_ms,
        )
        emit_counter("deploy.success")
        return DeploymentResult(url=url, repo_url=data.get("repoUrl"))
