"""Persistent stores used by starter."""

from .template_cache import MANIFEST_FILENAME, TemplateCache

__all__ = ["MANIFEST_FILENAME", "TemplateCache"]
