"""Builder view: one project, one editor, one preview session."""

from pathlib import Path
from typing import Any
from uuid import uuid4

from preview_core.config import Config
from preview_core.deploy import DeploymentBridge, DeploymentResult
from preview_core.files.export import export_filename, export_text
from preview_core.files.workspace import ProjectWorkspace
from preview_core.models import FileTreeNode, ProjectFile
from preview_core.observability import RequestContext, get_logger
from preview_core.plugins import create_engine
from preview_core.preview.controller import PreviewController
from preview_core.preview.session import SandboxSession
from preview_core.preview.sync import LiveEditSynchronizer
from preview_core.projects import ProjectClient
from preview_core.protocols import SandboxEngine

logger = get_logger(__name__)


class BuilderView:
    """Per-view state: workspace, preview controller, edit sync and deploy.

    Nothing here is process-wide; several views run side by side, each
    owning at most one sandbox session.

    Example usage:
        async with BuilderView.from_config("preview.yaml") as view:
            await view.open(project_id="abc123")
            session = await view.start()
            await view.edit("src/app/page.tsx", new_source)
    """

    def __init__(
        self,
        config: Config | None = None,
        engine: SandboxEngine | None = None,
        view_id: str | None = None,
        deployer: DeploymentBridge | None = None,
        projects: ProjectClient | None = None,
    ) -> None:
        """Initialize the view.

        Args:
            config: Configuration (defaults apply when omitted)
            engine: Sandbox engine; created from config when omitted
            view_id: Stable identifier (generated when omitted)
            deployer: Deployment bridge; created from config when omitted
            projects: Project-load client; created from config when omitted
        """
        self.config = config or Config()
        self.id = view_id or uuid4().hex[:12]
        self.engine = engine or create_engine(
            self.config.engine.backend,
            workdir=self.config.engine.workdir,
            **self.config.engine.options,
        )
        self.workspace = ProjectWorkspace()
        self.controller = PreviewController(self.engine, self.config)
        self.sync = LiveEditSynchronizer(self.workspace, self.controller)
        self.deployer = deployer or DeploymentBridge(
            self.config.deploy.endpoint,
            timeout=self.config.deploy.timeout_seconds,
        )
        self.projects = projects or ProjectClient(
            self.config.projects.base_url,
            timeout=self.config.projects.timeout_seconds,
        )
        self.project_id: str | None = None
        self.project_name = ""

    @classmethod
    def from_config(cls, path: str | Path, **kwargs: Any) -> "BuilderView":
        """Create a view from a YAML or JSON configuration file."""
        return cls(Config.from_file(path), **kwargs)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any], **kwargs: Any) -> "BuilderView":
        """Create a view from a configuration dictionary."""
        return cls(Config.from_dict(config_dict), **kwargs)

    def _context(self) -> RequestContext:
        return RequestContext(view_id=self.id, project_id=self.project_id)

    async def open(
        self,
        project_id: str | None = None,
        name: str | None = None,
        files: list[ProjectFile] | None = None,
    ) -> None:
        """Populate the workspace from the project endpoint or given files.

        Raises:
            ProjectLoadError: If loading by project_id fails
        """
        if project_id is not None and files is None:
            project = await self.projects.load(project_id)
            self.project_id = project.id
            self.project_name = name or project.name
            self.workspace.replace_all(project.files)
        else:
            self.project_id = project_id
            self.project_name = name or ""
            self.workspace.replace_all(files or [])

        with self._context():
            logger.info("Builder view opened", context={"files": len(self.workspace)})

    @property
    def files(self) -> list[ProjectFile]:
        return self.workspace.files

    @property
    def tree(self) -> list[FileTreeNode]:
        return self.workspace.tree

    @property
    def session(self) -> SandboxSession | None:
        return self.controller.session

    async def start(self) -> SandboxSession:
        """Start a preview of the current files.

        Raises:
            SessionBusyError: If a start is already in flight
        """
        async with self._context():
            return await self.controller.start(self.workspace.files)

    async def rebuild(self) -> SandboxSession:
        """User-initiated rebuild: tear down, then start fresh."""
        async with self._context():
            return await self.controller.rebuild(self.workspace.files)

    def select(self, path: str | None) -> None:
        self.sync.select(path)

    async def edit(self, path: str, content: str) -> bool:
        """Apply an editor change. Returns whether the sandbox was updated."""
        async with self._context():
            return await self.sync.apply_edit(path, content)

    def download(self) -> tuple[str, str]:
        """Export the files as (filename, text)."""
        return export_filename(self.project_name or "project"), export_text(self.workspace.files)

    async def deploy(self) -> DeploymentResult:
        """Deploy the current files.

        Raises:
            DeploymentError: Surfaced as-is; sandbox state is untouched
        """
        async with self._context():
            return await self.deployer.deploy(
                self.project_id,
                self.project_name or "project",
                self.workspace.files,
            )

    def status(self) -> dict[str, Any]:
        session = self.controller.session
        data: dict[str, Any] = {
            "view_id": self.id,
            "project_id": self.project_id,
            "name": self.project_name,
            "state": None,
            "preview_url": None,
            "logs": [],
            "error": None,
            "selected_path": self.workspace.selected_path,
        }
        if session is not None:
            data.update(session.to_dict())
        return data

    async def close(self) -> None:
        """View unmount: tear down any session."""
        async with self._context():
            await self.controller.teardown()

    async def __aenter__(self) -> "BuilderView":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
