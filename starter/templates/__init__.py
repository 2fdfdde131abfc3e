"""Template set retrieval and caching."""

from .fetcher import DEFAULT_MANIFEST_URL, FetchError, TemplateFetcher
from .manager import TemplateManager

__all__ = ["DEFAULT_MANIFEST_URL", "FetchError", "TemplateFetcher", "TemplateManager"]
