"""
Shared pytest fixtures and configuration for taskwerk tests.

Every test runs with HOME, the working directory and ``TASKWERK_*``
variables isolated under ``tmp_path`` so no real configuration is read or
written.
"""

import os
import sys
from pathlib import Path

import pytest

# Put `src/` first so `import taskwerk` uses workspace code.
_REPO_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_REPO_ROOT / "src"))

from taskwerk.core.config import reset_config_manager_for_tests  # noqa: E402
from taskwerk.core.utils.logger import reset_logging  # noqa: E402


@pytest.fixture
def home_dir(tmp_path):
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def project_dir(tmp_path):
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, home_dir, project_dir):
    """Point HOME and cwd at temp dirs and drop any TASKWERK_* variables."""
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    for key in list(os.environ):
        if key.startswith("TASKWERK_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(project_dir)

    reset_config_manager_for_tests()
    reset_logging()
    yield
    reset_config_manager_for_tests()
    reset_logging()


@pytest.fixture
def global_config_path(home_dir):
    return home_dir / ".config" / "taskwerk" / "config.yml"


@pytest.fixture
def local_config_path(project_dir):
    return project_dir / ".taskwerk" / "config.yml"


@pytest.fixture
def write_yaml():
    """Write a YAML document to ``path``, creating parent directories."""

    def _write(path: Path, text: str, mode: int = 0o600) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        os.chmod(path, mode)
        return path

    return _write
