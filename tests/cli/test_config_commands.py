"""
Tests for the ``taskwerk config`` command group.
"""

import json
import os

import pytest
import yaml
from typer.testing import CliRunner

from taskwerk.cli.exit_codes import EXIT_CONFIG_ERROR, EXIT_ERROR, EXIT_USER_CANCEL
from taskwerk.cli.main import app
from taskwerk.core.config import MASK_PLACEHOLDER, ConfigManager


@pytest.fixture
def runner(monkeypatch):
    # Keep log output out of captured command output.
    monkeypatch.setenv("TASKWERK_DEVELOPER_LOG_CONSOLE", "false")
    monkeypatch.setenv("TASKWERK_DEVELOPER_LOG_FILE", "false")
    return CliRunner()


def _invoke(runner, *args, **kwargs):
    return runner.invoke(app, ["config", *args], **kwargs)


class TestShow:
    def test_json_merged(self, runner):
        result = _invoke(runner, "show", "--format", "json")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["general"]["defaultPriority"] == "medium"

    def test_json_with_sources(self, runner, write_yaml, global_config_path):
        write_yaml(global_config_path, "general:\n  defaultPriority: high\n")
        result = _invoke(runner, "show", "--sources", "--format", "json")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["general"]["defaultPriority"] == {"value": "high", "source": "GLOBAL"}
        assert data["developer"]["logFile"] == {"value": False, "source": "ENV"}

    def test_yaml_local_layer_is_masked(self, runner, write_yaml, local_config_path):
        write_yaml(local_config_path, "ai:\n  apiKey: sk-XYZ\n")
        result = _invoke(runner, "show", "--layer", "local", "--format", "yaml")
        assert result.exit_code == 0
        assert yaml.safe_load(result.stdout) == {"ai": {"apiKey": MASK_PLACEHOLDER}}
        assert "sk-XYZ" not in result.output

    def test_table(self, runner):
        result = _invoke(runner, "show")
        assert result.exit_code == 0
        assert "general.defaultPriority" in result.stdout

    def test_unknown_layer(self, runner):
        result = _invoke(runner, "show", "--layer", "remote")
        assert result.exit_code == EXIT_ERROR

    def test_sources_only_for_merged_view(self, runner):
        result = _invoke(runner, "show", "--layer", "global", "--sources")
        assert result.exit_code == EXIT_ERROR
        assert "--sources only applies to the merged view" in result.output


class TestGetSet:
    def test_set_then_get(self, runner, local_config_path):
        result = _invoke(runner, "set", "ai.maxTokens", "4000")
        assert result.exit_code == 0
        assert yaml.safe_load(local_config_path.read_text()) == {"ai": {"maxTokens": 4000}}

        result = _invoke(runner, "get", "ai.maxTokens")
        assert result.exit_code == 0
        assert result.stdout.strip() == "4000"

    def test_set_global_secret(self, runner, global_config_path):
        result = _invoke(runner, "set", "ai.apiKey", "sk-XYZ", "--global")
        assert result.exit_code == 0
        assert "sk-XYZ" not in result.output
        assert "sk-XYZ" not in global_config_path.read_text()
        assert ConfigManager().get("ai.apiKey") == "sk-XYZ"

        result = _invoke(runner, "get", "ai.apiKey")
        assert result.stdout.strip() == MASK_PLACEHOLDER

    def test_set_array_from_comma_list(self, runner):
        _invoke(runner, "set", "git.protectedBranches", "main,release")
        result = _invoke(runner, "get", "git.protectedBranches")
        assert json.loads(result.stdout) == ["main", "release"]

    def test_invalid_value_is_rejected(self, runner, local_config_path):
        result = _invoke(runner, "set", "general.defaultPriority", "urgent")
        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "must be one of" in result.stdout
        assert not local_config_path.exists()

    def test_get_missing_key(self, runner):
        result = _invoke(runner, "get", "general.nothing")
        assert result.exit_code == EXIT_ERROR

    def test_get_malformed_key(self, runner):
        result = _invoke(runner, "get", "general..defaultPriority")
        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "Invalid configuration path" in result.stdout

    def test_unset(self, runner, write_yaml, global_config_path):
        write_yaml(global_config_path, "general:\n  defaultPriority: high\n")
        _invoke(runner, "set", "general.defaultPriority", "low")
        result = _invoke(runner, "unset", "general.defaultPriority")
        assert result.exit_code == 0
        assert "now from GLOBAL" in result.stdout

        result = _invoke(runner, "unset", "general.defaultPriority")
        assert result.exit_code == EXIT_ERROR


class TestLayerCommands:
    def test_migrate(self, runner, global_config_path, local_config_path):
        _invoke(runner, "set", "output.quiet", "true")
        result = _invoke(runner, "migrate")
        assert result.exit_code == 0
        assert yaml.safe_load(global_config_path.read_text()) == {"output": {"quiet": True}}
        assert yaml.safe_load(local_config_path.read_text()) == {}

    def test_migrate_nothing(self, runner):
        result = _invoke(runner, "migrate")
        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "No local configuration to migrate" in result.stdout

    def test_copy_from_global(self, runner, write_yaml, global_config_path, local_config_path):
        write_yaml(global_config_path, "output:\n  color: false\n")
        result = _invoke(runner, "copy-from-global")
        assert result.exit_code == 0
        assert yaml.safe_load(local_config_path.read_text()) == {"output": {"color": False}}

    def test_clear_requires_confirmation(self, runner, local_config_path):
        _invoke(runner, "set", "output.quiet", "true")
        result = _invoke(runner, "clear", input="n\n")
        assert result.exit_code == EXIT_USER_CANCEL
        assert yaml.safe_load(local_config_path.read_text()) == {"output": {"quiet": True}}

        result = _invoke(runner, "clear", "--yes")
        assert result.exit_code == 0
        assert yaml.safe_load(local_config_path.read_text()) == {}


class TestDiagnostics:
    def test_path(self, runner, global_config_path, local_config_path):
        result = _invoke(runner, "path")
        assert result.exit_code == 0
        assert "global:" in result.stdout
        assert "local:" in result.stdout

    def test_env(self, runner, monkeypatch):
        monkeypatch.setenv("TASKWERK_AI_API_KEY", "sk-XYZ")
        result = _invoke(runner, "env", "--no-comments")
        assert result.exit_code == 0
        lines = result.stdout.splitlines()
        assert 'export TASKWERK_GENERAL_DEFAULT_PRIORITY="medium"' in lines
        assert f'export TASKWERK_AI_API_KEY="{MASK_PLACEHOLDER}"' in lines
        assert "sk-XYZ" not in result.stdout

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions only")
    def test_check_permissions(self, runner, write_yaml, global_config_path):
        write_yaml(global_config_path, "ai:\n  apiKey: sk-raw\n", mode=0o644)
        result = _invoke(runner, "check")
        assert result.exit_code == EXIT_ERROR
        assert "chmod 600" in result.stdout

        os.chmod(global_config_path, 0o600)
        result = _invoke(runner, "check")
        assert result.exit_code == 0

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions only")
    def test_check_ignores_placeholder_only_file(self, runner, local_config_path):
        _invoke(runner, "set", "ai.apiKey", "sk-XYZ")
        assert MASK_PLACEHOLDER in local_config_path.read_text()
        os.chmod(local_config_path, 0o644)
        result = _invoke(runner, "check")
        assert result.exit_code == 0
        assert "look fine" in result.stdout

    def test_broken_config_reports_error(self, runner, write_yaml, local_config_path):
        write_yaml(local_config_path, "general: [broken\n")
        result = _invoke(runner, "show", "--format", "json")
        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "Failed to parse configuration file" in result.stdout
