"""Keeps the local template cache in sync with the published template set."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

from ..errors import ManifestFetchError, TemplateDownloadError
from ..logging import get_logger
from ..models import TemplateManifest
from ..stores import TemplateCache
from .fetcher import FetchError, TemplateFetcher


class TemplateManager:
    """Decides whether the cached templates can be reused or must be downloaded."""

    def __init__(self, cache_dir: Path, fetcher: TemplateFetcher | None = None) -> None:
        self.cache = TemplateCache(cache_dir)
        self.fetcher = fetcher or TemplateFetcher()
        self.logger = get_logger("templates")

    def ensure_templates(
        self,
        *,
        branch: str = "master",
        explicit: Optional[Path] = None,
        update: bool = True,
    ) -> Path:
        """Return the directory to render templates from.

        An explicit directory is trusted as is. Otherwise the remote manifest
        is fetched and the whole template set is downloaded when the cache is
        empty or its version differs from the remote one (string equality).
        """
        if explicit is not None:
            location = Path(explicit).expanduser().resolve()
            if not location.is_dir():
                raise TemplateDownloadError(f"Template directory {location} does not exist")
            self.logger.info("Using local templates at %s", location)
            return location

        if not update:
            self.logger.debug("Skipping template refresh; using %s", self.cache.root)
            return self.cache.root

        self.logger.info("Checking templates in %s", self.cache.root)
        try:
            remote = self.fetcher.fetch_manifest(branch)
        except FetchError as exc:
            raise ManifestFetchError(f"Failed to download latest templates due to {exc}") from exc

        with self.cache.lock:
            local = self.cache.load_manifest()
            if local is None:
                self.logger.info("No local templates found. Downloading now.")
            elif local.version != remote.version:
                self.logger.info(
                    "Newer templates found (%s -> %s). Downloading them now",
                    local.version,
                    remote.version,
                )
            else:
                self.logger.info("Local templates are up to date")
                return self.cache.root

            self._download(remote, branch)
        return self.cache.root

    def _download(self, manifest: TemplateManifest, branch: str) -> None:
        files: Dict[str, bytes] = {}
        for entry in manifest.templates:
            self.logger.debug("Downloading template %s", entry.relative_path)
            try:
                files[entry.relative_path] = self.fetcher.download(entry, branch)
            except FetchError as exc:
                raise TemplateDownloadError(
                    f"Failed to download template {entry.relative_path} due to {exc}"
                ) from exc
        try:
            self.cache.replace(manifest, files)
        except OSError as exc:
            raise TemplateDownloadError(
                f"Failed to store templates in {self.cache.root} due to {exc}"
            ) from exc


__all__ = ["TemplateManager"]
