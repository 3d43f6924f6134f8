"""Configuration loading with environment variable substitution."""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, PositiveFloat

ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)\}")


def substitute_env_vars(value: Any) -> Any:
    """Recursively substitute ${VAR_NAME} patterns with environment variables."""
    if isinstance(value, str):
        def replace(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable {var_name} is not set")
            return env_value

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]
    return value


class EngineConfig(BaseModel):
    """Sandbox engine selection."""

    backend: str = "local"  # local | mock | any registered engine
    workdir: str | None = None  # Base directory for the local engine
    options: dict[str, Any] = Field(default_factory=dict)


class CommandsConfig(BaseModel):
    """Commands spawned inside the sandbox."""

    install: list[str] = Field(default_factory=lambda: ["npm", "install"])
    dev: list[str] = Field(default_factory=lambda: ["npm", "run", "dev"])


class BootstrapConfig(BaseModel):
    """Fixed files injected into every mount."""

    project_name: str = "preview"
    scripts: dict[str, str] = Field(
        default_factory=lambda: {
            "dev": "next dev",
            "build": "next build",
            "start": "next start",
        }
    )
    dependencies: dict[str, str] = Field(
        default_factory=lambda: {
            "next": "14.0.4",
            "react": "^18.2.0",
            "react-dom": "^18.2.0",
        }
    )
    dev_dependencies: dict[str, str] = Field(default_factory=dict)
    framework_config_path: str = "next.config.js"
    framework_config: str = (
        "/** @type {import('next').NextConfig} */\n"
        "const nextConfig = {}\n"
        "\n"
        "module.exports = nextConfig\n"
    )


class TimeoutsConfig(BaseModel):
    """Per-stage timeouts in seconds. None waits indefinitely."""

    boot_seconds: PositiveFloat | None = None
    mount_seconds: PositiveFloat | None = None
    install_seconds: PositiveFloat | None = None
    ready_seconds: PositiveFloat | None = None


class LogsConfig(BaseModel):
    """Session log buffer settings."""

    capacity: int = Field(default=50, ge=1)
    error_tail_lines: int = Field(default=5, ge=0)


class DeployConfig(BaseModel):
    """External deploy endpoint."""

    endpoint: str = "http://localhost:3000/api/deploy"
    timeout_seconds: float = 60.0


class ProjectsConfig(BaseModel):
    """External project-load endpoint."""

    base_url: str = "http://localhost:3000/api/projects"
    timeout_seconds: float = 30.0


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: list[str] = Field(default_factory=list)


class Config(BaseModel):
    """Main configuration for preview-core."""

    engine: EngineConfig = Field(default_factory=EngineConfig)
    commands: CommandsConfig = Field(default_factory=CommandsConfig)
    bootstrap: BootstrapConfig = Field(default_factory=BootstrapConfig)
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)
    logs: LogsConfig = Field(default_factory=LogsConfig)
    deploy: DeployConfig = Field(default_factory=DeployConfig)
    projects: ProjectsConfig = Field(default_factory=ProjectsConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @classmethod
    def from_file(cls, path: str | Path) -> "Config":
        """Load configuration from a YAML or JSON file."""
        path = Path(path)
        with path.open() as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                import json
                data = json.load(f)

        # Substitute environment variables
        data = substitute_env_vars(data or {})
        return cls.model_validate(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Load configuration from a dictionary."""
        data = substitute_env_vars(data)
        return cls.model_validate(data)
