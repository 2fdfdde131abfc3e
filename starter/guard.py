"""Refuses to clobber existing artifacts unless overwriting was requested."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from .errors import ArtifactExistsError
from .logging import get_logger
from .models import ArtifactKind
from .packs import Pack

# Fixed check order so the reported conflict is deterministic.
_ORDER = (
    ArtifactKind.CONTAINER_BUILD_FILE,
    ArtifactKind.SERVICE_DESCRIPTOR,
    ArtifactKind.ORCHESTRATION_MANIFEST,
    ArtifactKind.DEPLOYMENT_BUNDLE,
)


class ConflictGuard:
    """Checks artifact destinations before any analysis work starts."""

    def __init__(self) -> None:
        self.logger = get_logger("guard")

    def check(
        self,
        project_path: Path,
        kinds: Iterable[ArtifactKind],
        pack: Pack,
        allow_overwrite: bool,
    ) -> None:
        requested = set(kinds)
        for kind in _ORDER:
            if kind not in requested or kind in pack.native_artifacts:
                continue
            self.check_one(project_path, kind, allow_overwrite)

    def check_one(self, project_path: Path, kind: ArtifactKind, allow_overwrite: bool) -> None:
        destination = kind.destination(project_path)
        if not destination.exists():
            return
        if not allow_overwrite:
            raise ArtifactExistsError(destination)
        self.logger.info("%s exists and will be overwritten", destination.name)


__all__ = ["ConflictGuard"]
