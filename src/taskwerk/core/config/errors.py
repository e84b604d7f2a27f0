"""
Exceptions raised by the taskwerk configuration core.

Parse, validation and persistence failures are never retried internally;
they propagate to the caller, which aborts the current operation.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from .validation import ConfigViolation


class ConfigurationError(Exception):
    """Base exception for configuration errors."""

    def __init__(
        self,
        message: str,
        operation: str = "general",
        context: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize the configuration error.

        Args:
            message: Error message
            operation: Operation that failed (load, save, validation, ...)
            context: Additional context information
        """
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.context = context or {}


class ConfigParseError(ConfigurationError):
    """A layer file exists but cannot be parsed as YAML or JSON."""

    def __init__(self, path: Path, cause: Any):
        self.path = Path(path)
        self.cause = cause
        super().__init__(
            f"Failed to parse configuration file {self.path}: {cause}",
            operation="load",
            context={"path": str(self.path)},
        )


class ConfigValidationError(ConfigurationError):
    """Carries every schema violation found, not just the first."""

    def __init__(self, violations: List["ConfigViolation"]):
        self.violations = list(violations)
        details = "; ".join(v.message for v in self.violations)
        super().__init__(
            f"Configuration validation failed: {details}",
            operation="validation",
            context={"violations": [v.path for v in self.violations]},
        )


class ConfigPersistenceError(ConfigurationError):
    """Directory creation or write failure while saving a layer."""

    def __init__(self, path: Path, cause: Any, operation: str = "save"):
        self.path = Path(path)
        self.cause = cause
        super().__init__(
            f"Failed to write configuration file {self.path}: {cause}",
            operation=operation,
            context={"path": str(self.path)},
        )
