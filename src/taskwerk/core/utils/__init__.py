"""Utility components: logging and filesystem locations."""
