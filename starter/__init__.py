"""Starter: detect a project's stack and scaffold its deployment files."""

__version__ = "1.4.0"
