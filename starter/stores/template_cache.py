"""On-disk cache holding the last downloaded template set."""

from __future__ import annotations

import json
import os
import shutil
import threading
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from ..logging import get_logger
from ..models import TemplateManifest

MANIFEST_FILENAME = "manifest.json"
# Entries under the cache directory that a template refresh must keep.
_NON_TEMPLATE_ENTRIES = {"crash"}

_LOCKS: Dict[Path, threading.Lock] = {}
_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    with _LOCKS_GUARD:
        lock = _LOCKS.get(path)
        if lock is None:
            lock = threading.Lock()
            _LOCKS[path] = lock
        return lock


class TemplateCache:
    """Versioned template directory keyed by its ``manifest.json``.

    A refresh writes the new set into a staging directory next to the
    cache, writes the manifest last, then swaps the staging directory in.
    Refreshes of the same directory within one process are serialized.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root).expanduser().resolve()
        self.logger = get_logger("stores.template_cache")

    @property
    def manifest_path(self) -> Path:
        return self.root / MANIFEST_FILENAME

    @property
    def lock(self) -> threading.Lock:
        return _lock_for(self.root)

    def load_manifest(self) -> Optional[TemplateManifest]:
        """Return the cached manifest, or None when absent or unreadable."""
        try:
            data = json.loads(self.manifest_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as exc:
            self.logger.debug("Ignoring unreadable template manifest %s: %s", self.manifest_path, exc)
            return None
        try:
            return TemplateManifest.from_dict(data)
        except ValueError as exc:
            self.logger.debug("Ignoring invalid template manifest %s: %s", self.manifest_path, exc)
            return None

    def replace(self, manifest: TemplateManifest, files: Mapping[str, bytes]) -> None:
        """Replace the whole cache content with ``files`` described by ``manifest``."""
        self.root.parent.mkdir(parents=True, exist_ok=True)
        staging = self.root.parent / f".{self.root.name}.staging-{os.getpid()}-{threading.get_ident()}"
        retired = self.root.parent / f".{self.root.name}.old-{os.getpid()}-{threading.get_ident()}"
        shutil.rmtree(staging, ignore_errors=True)
        staging.mkdir(parents=True)
        carried: List[str] = []
        try:
            for relative, content in files.items():
                target = staging / relative
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(content)
            (staging / MANIFEST_FILENAME).write_text(
                json.dumps(manifest.to_dict(), indent=2, sort_keys=True), encoding="utf-8"
            )
            if self.root.exists():
                carried = self._carry_over(staging)
                self.root.rename(retired)
            staging.rename(self.root)
        except BaseException:
            self._restore(staging, retired if retired.exists() else self.root, carried)
            shutil.rmtree(staging, ignore_errors=True)
            if retired.exists() and not self.root.exists():
                retired.rename(self.root)
            raise
        shutil.rmtree(retired, ignore_errors=True)
        self.logger.debug("Template cache %s now at version %s", self.root, manifest.version)

    def _carry_over(self, staging: Path) -> List[str]:
        # The cache directory can hold data that is not part of the template set.
        carried: List[str] = []
        for child in self.root.iterdir():
            if child.name == MANIFEST_FILENAME or (staging / child.name).exists():
                continue
            if child.name in _NON_TEMPLATE_ENTRIES:
                shutil.move(str(child), str(staging / child.name))
                carried.append(child.name)
        return carried

    def _restore(self, staging: Path, previous: Path, carried: List[str]) -> None:
        # Carried entries go back to the previous cache before staging is discarded.
        for name in carried:
            source = staging / name
            if source.exists() and not (previous / name).exists():
                shutil.move(str(source), str(previous / name))


__all__ = ["MANIFEST_FILENAME", "TemplateCache"]
