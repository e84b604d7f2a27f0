import logging
import os
from pathlib import Path
from typing import Mapping, Optional

APP_NAME = "taskwerk"
# Project-local dotdirectory, relative to the project root.
PROJECT_CONFIG_DIRNAME = ".taskwerk"
CONFIG_FILENAME = "config.yml"
CONFIG_JSON_FILENAME = "config.json"
SECRETS_FILENAME = "credentials.json"

_log = logging.getLogger(__name__)


def home_dir() -> Path:
    """Current user's home directory (honours ``HOME``)."""
    return Path.home()


def user_config_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Per-user config directory: ``$XDG_CONFIG_HOME/taskwerk`` or ``~/.config/taskwerk``."""
    source = os.environ if environ is None else environ
    xdg_config = source.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_NAME
    return home_dir() / ".config" / APP_NAME


def legacy_config_dir() -> Path:
    """Pre-XDG per-user dotdirectory (``~/.taskwerk``)."""
    return home_dir() / PROJECT_CONFIG_DIRNAME


def project_config_dir(project_root: Optional[Path] = None) -> Path:
    return Path(project_root or Path.cwd()) / PROJECT_CONFIG_DIRNAME


def expand_user_path(value: str) -> Path:
    """Expand ``~`` in configured paths such as ``developer.logDirectory``."""
    return Path(os.path.expanduser(value))


def ensure_dir(path: Path) -> bool:
    """Create ``path`` if missing; returns False (and logs) when that fails."""
    try:
        Path(path).mkdir(parents=True, exist_ok=True)
        return True
    except OSError as e:
        _log.warning("Could not create directory %s: %s", path, e)
        return False
