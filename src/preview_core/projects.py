"""Client for the external project-load endpoint."""

import httpx

from preview_core.exceptions import ProjectLoadError
from preview_core.models import Project, ProjectFile
from preview_core.observability import get_logger
from preview_core.utils.http import json_object
from preview_core.utils.validation import validate_identifier

logger = get_logger(__name__)


class ProjectClient:
    """Loads a project's name and files: ``GET {base_url}/{project_id}``."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def load(self, project_id: str) -> Project:
        """Fetch a project.

        Raises:
            ProjectLoadError: On transport failure, non-2xx status or bad payload
        """
        try:
            validate_identifier(project_id, "project_id")
        except ValueError as e:
            raise ProjectLoadError(str(e)) from e

        url = f"{self.base_url}/{project_id}"
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            raise ProjectLoadError(f"Failed to load project: {e}") from e

        if not response.is_success:
            raise ProjectLoadError(f"Failed to load project (HTTP {response.status_code})")

        project = json_object(response).get("project")
        if not isinstance(project, dict):
            raise ProjectLoadError("Malformed project response")

        try:
            files = [ProjectFile.from_dict(f) for f in project.get("files") or []]
        except (KeyError, TypeError) as e:
            raise ProjectLoadError(f"Malformed project file: {e}") from e

        logger.info("Project loaded", context={"project_id": project_id, "files": len(files)})
        return Project(id=project_id, name=str(project.get("name") or ""), files=files)
