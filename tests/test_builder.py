"""Tests for BuilderView."""

import httpx
import pytest

from preview_core.builder import BuilderView
from preview_core.deploy import DeploymentBridge
from preview_core.engines.mock import MockSandboxEngine
from preview_core.exceptions import DeploymentError, ProjectLoadError
from preview_core.models import ProjectFile
from preview_core.preview.session import SessionState
from preview_core.projects import ProjectClient


def _projects(payload: dict, status: int = 200) -> ProjectClient:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=payload)

    return ProjectClient("https://app.test/api/projects", transport=httpx.MockTransport(handler))


def _deployer(payload: dict, status: int = 200) -> DeploymentBridge:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=payload)

    return DeploymentBridge("https://deploy.test/api/deploy", transport=httpx.MockTransport(handler))


class TestBuilderView:
    """Tests for BuilderView."""

    def test_from_dict(self) -> None:
        view = BuilderView.from_dict({"engine": {"backend": "mock"}}, view_id="view-1")

        assert view.id == "view-1"
        assert isinstance(view.engine, MockSandboxEngine)
        assert view.session is None

    @pytest.mark.asyncio
    async def test_open_with_files(self, mock_engine, config, sample_files) -> None:
        view = BuilderView(config, engine=mock_engine)
        await view.open(name="Demo", files=sample_files)

        assert view.files == sample_files
        assert [node.name for node in view.tree] == ["src", "README.md"]

    @pytest.mark.asyncio
    async def test_open_by_project_id(self, mock_engine, config) -> None:
        projects = _projects({"project": {"name": "Bakery", "files": [{"path": "index.html", "content": "<h1/>"}]}})
        view = BuilderView(config, engine=mock_engine, projects=projects)
        await view.open(project_id="proj-1")

        assert view.project_id == "proj-1"
        assert view.project_name == "Bakery"
        assert view.files == [ProjectFile(path="index.html", content="<h1/>")]

    @pytest.mark.asyncio
    async def test_open_load_failure(self, mock_engine, config) -> None:
        view = BuilderView(config, engine=mock_engine, projects=_projects({}, status=500))

        with pytest.raises(ProjectLoadError):
            await view.open(project_id="proj-1")

    @pytest.mark.asyncio
    async def test_start_edit_close(self, mock_engine, config, sample_files, metrics) -> None:
        async with BuilderView(config, engine=mock_engine, view_id="view-7") as view:
            await view.open(name="Demo", files=sample_files)
            session = await view.start()

            assert session.state is SessionState.READY
            assert await view.edit("src/app/page.tsx", "new") is True
            assert mock_engine.handles[0].writes == [("src/app/page.tsx", "new")]

        assert view.session is None
        assert mock_engine.handles[0].torn_down
        ready = [labels for name, _, labels in metrics if name == "preview.session.ready"]
        assert ready == [{"view_id": "view-7"}]

    @pytest.mark.asyncio
    async def test_rebuild_uses_edited_files(self, mock_engine, config, sample_files) -> None:
        view = BuilderView(config, engine=mock_engine)
        await view.open(files=sample_files)
        await view.edit("README.md", "# Before start\n")
        await view.rebuild()

        assert mock_engine.handles[0].read_file("README.md") == "# Before start\n"
        await view.close()

    @pytest.mark.asyncio
    async def test_download(self, mock_engine, config) -> None:
        view = BuilderView(config, engine=mock_engine)
        await view.open(name="Bakery Site", files=[ProjectFile(path="a.ts", content="A")])

        assert view.download() == ("Bakery-Site.txt", "\n\n=== a.ts ===\nA")

    @pytest.mark.asyncio
    async def test_deploy(self, mock_engine, config, sample_files) -> None:
        deployer = _deployer({"success": True, "url": "https://demo.vercel.app"})
        view = BuilderView(config, engine=mock_engine, deployer=deployer)
        await view.open(project_id="proj-1", name="Demo", files=sample_files)

        result = await view.deploy()
        assert result.url == "https://demo.vercel.app"

    @pytest.mark.asyncio
    async def test_deploy_failure_leaves_session_alone(self, mock_engine, config, sample_files) -> None:
        deployer = _deployer({"success": False, "error": "quota exceeded"}, status=500)
        view = BuilderView(config, engine=mock_engine, deployer=deployer)
        await view.open(name="Demo", files=sample_files)
        await view.start()

        with pytest.raises(DeploymentError, match="quota exceeded"):
            await view.deploy()

        assert view.session.state is SessionState.READY
        assert view.session.preview_url == "https://abc.local:3000"
        await view.close()

    @pytest.mark.asyncio
    async def test_status(self, mock_engine, config, sample_files) -> None:
        view = BuilderView(config, engine=mock_engine, view_id="view-3")
        await view.open(name="Demo", files=sample_files)
        assert view.status()["state"] is None

        view.select("README.md")
        await view.start()
        status = view.status()

        assert status["view_id"] == "view-3"
        assert status["state"] == "ready"
        assert status["preview_url"] == "https://abc.local:3000"
        assert status["selected_path"] == "README.md"
        assert status["error"] is None
        await view.close()
