"""Error types raised by the orchestration pipeline."""

from __future__ import annotations

from pathlib import Path

from .models import ArtifactKind


class StarterError(RuntimeError):
    """Base class for fatal, user-facing starter failures."""


class ManifestFetchError(StarterError):
    """The remote template manifest could not be fetched or parsed."""


class TemplateDownloadError(StarterError):
    """One or more template files could not be downloaded."""


class NoSupportedFrameworkError(StarterError):
    def __init__(self, message: str = "Failed to detect supported framework") -> None:
        super().__init__(message)


class NoServiceDescriptorFoundError(StarterError):
    def __init__(self, message: str = "Failed to detect service.yml") -> None:
        super().__init__(message)


class SelectionAbortedError(StarterError):
    """The interactive pack selection did not produce a valid choice."""


class ArtifactExistsError(StarterError):
    """A destination file exists and overwriting was not allowed."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        super().__init__(f"{self.path.name} already exists. Use overwrite flag to overwrite it")


class RegistryUnavailableError(StarterError):
    """The upstream image registry could not be reached."""


class TagLookupError(StarterError):
    """The tag list for an image could not be retrieved."""


class AnalysisError(StarterError):
    """A pack failed while analysing the project."""


class RenderError(StarterError):
    """A pack failed while writing one of the requested artifacts."""

    def __init__(self, kind: ArtifactKind, message: str) -> None:
        self.kind = kind
        super().__init__(message)


class PackError(RuntimeError):
    """Raised by packs for failures in their own analysis or rendering."""


__all__ = [
    "AnalysisError",
    "ArtifactExistsError",
    "ManifestFetchError",
    "NoServiceDescriptorFoundError",
    "NoSupportedFrameworkError",
    "PackError",
    "RegistryUnavailableError",
    "RenderError",
    "SelectionAbortedError",
    "StarterError",
    "TagLookupError",
    "TemplateDownloadError",
]
