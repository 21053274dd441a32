"""
Setup shim for build tools that still invoke setup.py directly.
Package metadata and dependencies for lassotune live in pyproject.toml.
"""
from setuptools import setup

# Configuration is read from pyproject.toml
setup()
