"""Tests for configuration loading."""

import json
import tempfile
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from preview_core.config import Config, substitute_env_vars


class TestEnvSubstitution:
    """Tests for environment variable substitution."""

    def test_substitute_string(self, monkeypatch):
        """Test substituting a string value."""
        monkeypatch.setenv("TEST_VAR", "hello")
        assert substitute_env_vars("${TEST_VAR}") == "hello"

    def test_substitute_in_dict(self, monkeypatch):
        """Test substituting values in a dictionary."""
        monkeypatch.setenv("DEPLOY_HOST", "deploy.example.com")
        data = {"endpoint": "https://${DEPLOY_HOST}/api/deploy", "other": "value"}
        result = substitute_env_vars(data)
        assert result == {"endpoint": "https://deploy.example.com/api/deploy", "other": "value"}

    def test_substitute_in_list(self, monkeypatch):
        """Test substituting values in a list."""
        monkeypatch.setenv("PKG_MANAGER", "pnpm")
        assert substitute_env_vars(["${PKG_MANAGER}", "install"]) == ["pnpm", "install"]

    def test_missing_env_var_raises(self, monkeypatch):
        """Test that missing env vars raise ValueError."""
        monkeypatch.delenv("NONEXISTENT_VAR", raising=False)
        with pytest.raises(ValueError, match="NONEXISTENT_VAR"):
            substitute_env_vars("${NONEXISTENT_VAR}")

    def test_non_string_values_untouched(self):
        """Numbers and booleans pass through."""
        assert substitute_env_vars({"port": 8080, "debug": True}) == {"port": 8080, "debug": True}


class TestConfigLoading:
    """Tests for configuration loading."""

    def test_from_dict(self, sample_config_dict):
        """Test loading config from dictionary."""
        config = Config.from_dict(sample_config_dict)
        assert config.engine.backend == "mock"
        assert config.deploy.endpoint == "https://deploy.test/api/deploy"
        assert config.projects.base_url == "https://app.test/api/projects"

    def test_from_yaml_file(self, sample_config_dict):
        """Test loading config from YAML file."""
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "preview.yaml"
            path.write_text(yaml.dump(sample_config_dict))

            config = Config.from_file(path)
            assert config.engine.backend == "mock"

    def test_from_json_file(self, sample_config_dict):
        """Test loading config from JSON file."""
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "preview.json"
            path.write_text(json.dumps(sample_config_dict))

            config = Config.from_file(path)
            assert config.commands.dev == ["npm", "run", "dev"]

    def test_empty_yaml_file_uses_defaults(self):
        """An empty YAML document yields the defaults."""
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "empty.yaml"
            path.write_text("")

            config = Config.from_file(path)
            assert config.engine.backend == "local"

    def test_yaml_env_substitution(self, monkeypatch):
        """Environment variables are substituted in files."""
        monkeypatch.setenv("PREVIEW_WORKDIR", "/var/tmp/previews")
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "preview.yml"
            path.write_text("engine:\n  workdir: ${PREVIEW_WORKDIR}\n")

            config = Config.from_file(path)
            assert config.engine.workdir == "/var/tmp/previews"

    def test_defaults(self):
        """Test that defaults are applied."""
        config = Config.from_dict({})
        assert config.engine.backend == "local"
        assert config.commands.install == ["npm", "install"]
        assert config.commands.dev == ["npm", "run", "dev"]
        assert config.logs.capacity == 50
        assert config.logs.error_tail_lines == 5
        assert config.bootstrap.framework_config_path == "next.config.js"
        assert config.bootstrap.scripts["dev"] == "next dev"

    def test_timeouts_default_to_none(self):
        """No stage timeout is enforced unless configured."""
        timeouts = Config().timeouts
        assert timeouts.boot_seconds is None
        assert timeouts.mount_seconds is None
        assert timeouts.install_seconds is None
        assert timeouts.ready_seconds is None

    def test_timeouts_must_be_positive(self):
        """Zero or negative timeouts are rejected."""
        with pytest.raises(ValidationError):
            Config.from_dict({"timeouts": {"ready_seconds": 0}})

    def test_log_capacity_must_be_positive(self):
        """A zero-sized log buffer is rejected."""
        with pytest.raises(ValidationError):
            Config.from_dict({"logs": {"capacity": 0}})

    def test_engine_options(self):
        """Free-form engine options are kept as given."""
        config = Config.from_dict({"engine": {"backend": "local", "options": {"env": {"PORT": "4000"}}}})
        assert config.engine.options == {"env": {"PORT": "4000"}}
