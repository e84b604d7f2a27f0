"""Command-line interface for taskwerk."""
