#!/usr/bin/env python3
"""
Setup script for taskwerk package.
"""

from setuptools import setup, find_packages

setup(
    name="taskwerk",
    version="0.9.0",
    description="Layered configuration core and config CLI for taskwerk",
    author="taskwerk Team",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.10",
    install_requires=[
        "PyYAML>=6.0",
        "typer>=0.9.0",
        "rich>=13.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "taskwerk=taskwerk.cli.main:app",
        ],
    },
)
