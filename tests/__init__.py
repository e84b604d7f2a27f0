"""Test package for taskwerk."""
