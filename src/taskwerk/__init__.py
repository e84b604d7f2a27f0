"""
taskwerk - configuration core

Resolves one effective configuration from compiled-in defaults, a per-user
file, a project file and ``TASKWERK_*`` environment variables, validates it
against a declarative schema and persists edits with secrets masked.

Package Structure:
- core/config/: Schema registry, merge engine, validator and layer store
- core/utils/: Logging and filesystem location helpers
- cli/: ``taskwerk config`` commands built on the public accessors
"""

__version__ = "0.9.0"
