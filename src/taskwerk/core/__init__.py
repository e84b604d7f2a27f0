"""
Core modules for taskwerk.

- config: layered configuration (defaults, global, local, environment)
- utils: logging and path helpers
"""
