"""Pack detection and disambiguation."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Sequence

from .errors import NoServiceDescriptorFoundError, NoSupportedFrameworkError, SelectionAbortedError
from .logging import get_logger
from .models import ArtifactKind
from .packs import Pack


class Detector:
    """Runs every registered pack against a project and keeps all matches."""

    def __init__(self, packs: Sequence[Pack]) -> None:
        self.packs = list(packs)
        self.logger = get_logger("detection")

    def detect(self, project_path: Path) -> List[Pack]:
        """Return every matching pack, in registration order."""
        candidates = [pack for pack in self.packs if pack.detect(Path(project_path))]
        self.logger.debug(
            "Detected packs for %s: %s",
            project_path,
            ", ".join(pack.name for pack in candidates) or "none",
        )
        return candidates

    def detect_for_manifest(self, project_path: Path) -> Pack:
        """Return the service.yml pack; Kubernetes output is only generated from one."""
        descriptor = ArtifactKind.SERVICE_DESCRIPTOR.filename
        for pack in self.detect(project_path):
            if pack.name == descriptor:
                return pack
        raise NoServiceDescriptorFoundError()


class SelectionResolver:
    """Picks one pack out of the detected candidates."""

    def __init__(self, prompt: Callable[[str], str] | None = None) -> None:
        self._prompt = prompt or input
        self.logger = get_logger("detection")

    def choose(self, candidates: Sequence[Pack], unattended: bool) -> Pack:
        if not candidates:
            raise NoSupportedFrameworkError()
        if len(candidates) == 1:
            return candidates[0]
        if unattended:
            chosen = candidates[0]
            self.logger.info(
                "Several frameworks detected (%s); using %s",
                ", ".join(pack.name for pack in candidates),
                chosen.name,
            )
            return chosen
        return self._ask(candidates)

    def _ask(self, candidates: Sequence[Pack]) -> Pack:
        lines = ["Found more than one framework:"]
        for index, pack in enumerate(candidates, start=1):
            lines.append(f"  {index}. {pack.name}")
        lines.append(f"Which one do you want to use? [1-{len(candidates)}] ")
        try:
            answer = self._prompt("\n".join(lines)).strip()
        except (EOFError, KeyboardInterrupt) as exc:
            raise SelectionAbortedError("Framework selection aborted") from exc

        if answer.isdigit():
            index = int(answer)
            if 1 <= index <= len(candidates):
                return candidates[index - 1]
        for pack in candidates:
            if pack.name == answer:
                return pack
        raise SelectionAbortedError(f"Invalid framework selection: {answer or '(empty)'}")


__all__ = ["Detector", "SelectionResolver"]
