"""Core data models shared across starter components."""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Dict, FrozenSet, Iterable, List, Optional


class ArtifactKind(enum.Enum):
    """Deployment artifacts starter knows how to generate."""

    CONTAINER_BUILD_FILE = "dockerfile"
    SERVICE_DESCRIPTOR = "service"
    ORCHESTRATION_MANIFEST = "kube"
    DEPLOYMENT_BUNDLE = "skycap"

    @property
    def filename(self) -> str:
        return _ARTIFACT_FILENAMES[self]

    def destination(self, project_path: Path) -> Path:
        return Path(project_path) / self.filename


_ARTIFACT_FILENAMES = {
    ArtifactKind.CONTAINER_BUILD_FILE: "Dockerfile",
    ArtifactKind.SERVICE_DESCRIPTOR: "service.yml",
    ArtifactKind.ORCHESTRATION_MANIFEST: "kubernetes.yml",
    ArtifactKind.DEPLOYMENT_BUNDLE: "starter.bundle",
}


def parse_artifacts(generator: str | Iterable[str]) -> FrozenSet[ArtifactKind]:
    """Parse a generator selector such as ``"dockerfile,service"``.

    The container build file is always included since every run renders it.
    """
    if isinstance(generator, str):
        tokens = generator.split(",")
    else:
        tokens = list(generator)
    kinds = {ArtifactKind.CONTAINER_BUILD_FILE}
    for token in tokens:
        cleaned = token.strip().lower()
        if not cleaned:
            continue
        try:
            kinds.add(ArtifactKind(cleaned))
        except ValueError:
            valid = ", ".join(kind.value for kind in ArtifactKind)
            raise ValueError(f"Unknown generator '{cleaned}'. Valid generators: {valid}") from None
    return frozenset(kinds)


@dataclass(frozen=True)
class TemplateEntry:
    """A single file of the remote template set."""

    relative_path: str
    remote_source: str

    def __post_init__(self) -> None:
        pure = PurePosixPath(self.relative_path)
        if not self.relative_path or pure.is_absolute() or ".." in pure.parts:
            raise ValueError(f"Invalid template path '{self.relative_path}'")


@dataclass(frozen=True)
class TemplateManifest:
    """Versioned description of the template set."""

    version: str
    templates: tuple[TemplateEntry, ...] = ()

    @classmethod
    def from_dict(cls, payload: Any) -> "TemplateManifest":
        if not isinstance(payload, dict):
            raise ValueError("Template manifest must be a JSON object")
        version = payload.get("version")
        if not isinstance(version, (str, int, float)) or isinstance(version, bool):
            raise ValueError("Template manifest is missing a version")
        raw_entries = payload.get("templates", [])
        if not isinstance(raw_entries, list):
            raise ValueError("Template manifest 'templates' must be a list")
        entries: List[TemplateEntry] = []
        for raw in raw_entries:
            if not isinstance(raw, dict):
                raise ValueError("Template manifest entries must be objects")
            relative_path = raw.get("relative_path")
            remote_source = raw.get("remote_source")
            if not isinstance(relative_path, str) or not isinstance(remote_source, str):
                raise ValueError("Template entries need 'relative_path' and 'remote_source'")
            entries.append(TemplateEntry(relative_path=relative_path, remote_source=remote_source))
        return cls(version=str(version), templates=tuple(entries))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "templates": [asdict(entry) for entry in self.templates],
        }


@dataclass(frozen=True)
class AnalysisRequest:
    """Everything a single analysis run needs, built once per invocation."""

    project_path: Path
    environment: str = "production"
    unattended: bool = False
    allow_overwrite: bool = False
    artifacts: FrozenSet[ArtifactKind] = frozenset({ArtifactKind.CONTAINER_BUILD_FILE})
    use_registry: bool = False
    templates: Optional[Path] = None
    branch: str = "master"
    git_repo: str = ""
    git_branch: str = ""
    update_templates: bool = True

    @property
    def interactive(self) -> bool:
        return not self.unattended

    def wants(self, kind: ArtifactKind) -> bool:
        return kind in self.artifacts


@dataclass
class AnalysisResult:
    """Outcome of an analysis run returned to the CLI or daemon caller."""

    ok: bool = False
    language: str = ""
    language_version: str = ""
    supported_language_versions: List[str] = field(default_factory=list)
    framework: str = ""
    framework_version: str = ""
    databases: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    start_commands: List[str] = field(default_factory=list)
    build_commands: List[str] = field(default_factory=list)
    deploy_commands: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = [
    "AnalysisRequest",
    "AnalysisResult",
    "ArtifactKind",
    "TemplateEntry",
    "TemplateManifest",
    "parse_artifacts",
]
