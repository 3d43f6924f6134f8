"""Pytest configuration and fixtures."""

import pytest

from preview_core.config import Config
from preview_core.engines.mock import MockSandboxEngine, ScriptedCommand
from preview_core.models import ProjectFile
from preview_core.observability import register_metric_callback, unregister_metric_callback


@pytest.fixture
def sample_config_dict():
    """Sample configuration dictionary for testing."""
    return {
        "engine": {"backend": "mock"},
        "commands": {"install": ["npm", "install"], "dev": ["npm", "run", "dev"]},
        "logs": {"capacity": 50, "error_tail_lines": 5},
        "deploy": {"endpoint": "https://deploy.test/api/deploy"},
        "projects": {"base_url": "https://app.test/api/projects"},
    }


@pytest.fixture
def config(sample_config_dict) -> Config:
    """Parsed test configuration."""
    return Config.from_dict(sample_config_dict)


@pytest.fixture
def sample_files() -> list[ProjectFile]:
    """A small generated Next.js project."""
    return [
        ProjectFile(path="src/app/page.tsx", content="export default function Page() { return <h1>Hi</h1> }\n"),
        ProjectFile(path="src/app/layout.tsx", content="export default function Layout({ children }) { return children }\n"),
        ProjectFile(path="src/components/Button.tsx", content="export const Button = () => <button />\n"),
        ProjectFile(path="README.md", content="# Demo\n"),
    ]


@pytest.fixture
def ready_scripts() -> dict[str, ScriptedCommand]:
    """Install succeeds, dev server reports readiness and keeps running."""
    return {
        "npm install": ScriptedCommand(output=["added 3 packages\n", "found 0 vulnerabilities\n"]),
        "npm run dev": ScriptedCommand(
            output=["> next dev\n", "ready - started server on 0.0.0.0:3000\n"],
            exit_code=None,
            ready_port=3000,
            ready_url="https://abc.local:3000",
        ),
    }


@pytest.fixture
def mock_engine(ready_scripts) -> MockSandboxEngine:
    """Mock engine whose sessions reach Ready."""
    return MockSandboxEngine(scripts=ready_scripts)


@pytest.fixture
def metrics():
    """Collect emitted metrics as (name, value, labels) tuples."""
    received: list[tuple[str, float, dict]] = []

    def callback(name: str, value: float, labels: dict) -> None:
        received.append((name, value, labels))

    register_metric_callback(callback)
    yield received
    unregister_metric_callback(callback)
