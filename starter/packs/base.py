"""Capability contract implemented by every pack."""

from __future__ import annotations

import io
import json
import tarfile
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, ClassVar, Dict, FrozenSet, List, Mapping, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError, TemplateNotFound

from ..errors import PackError
from ..logging import get_logger
from ..models import ArtifactKind

Prompt = Callable[[str], str]


class Pack(ABC):
    """Recognizes one ecosystem and renders its deployment artifacts."""

    #: Canonical name, also used as the upstream image name for enrichment.
    name: ClassVar[str]
    #: Artifact kinds this pack owns natively; existing files of these kinds are not conflicts.
    native_artifacts: ClassVar[FrozenSet[ArtifactKind]] = frozenset()
    #: Whether supported versions may be narrowed from the image registry.
    enrichable: ClassVar[bool] = True

    @abstractmethod
    def detect(self, project_path: Path) -> bool:
        """Return True when the project belongs to this pack's ecosystem."""

    @abstractmethod
    def analyze(
        self,
        project_path: Path,
        environment: str,
        interactive: bool,
        git_repo: str = "",
        git_branch: str = "",
    ) -> None:
        """Inspect the project and record versions, framework, databases and commands."""

    @abstractmethod
    def write_dockerfile(self, template_dir: Path, project_path: Path, interactive: bool) -> None:
        ...

    @abstractmethod
    def write_service_yaml(self, template_dir: Path, project_path: Path, interactive: bool) -> None:
        ...

    @abstractmethod
    def write_kubes_config(self, project_path: Path, interactive: bool) -> None:
        ...

    @abstractmethod
    def create_bundle(self, project_path: Path, template_dir: Path, branch: str) -> None:
        ...

    @property
    @abstractmethod
    def language_version(self) -> str:
        ...

    @property
    @abstractmethod
    def framework(self) -> str:
        ...

    @property
    @abstractmethod
    def framework_version(self) -> str:
        ...

    @property
    @abstractmethod
    def supported_language_versions(self) -> List[str]:
        ...

    @abstractmethod
    def set_supported_language_versions(self, versions: List[str]) -> None:
        ...

    @property
    @abstractmethod
    def databases(self) -> List[str]:
        ...

    @property
    @abstractmethod
    def start_commands(self) -> List[str]:
        ...

    @property
    @abstractmethod
    def build_commands(self) -> List[str]:
        ...

    @property
    @abstractmethod
    def deploy_commands(self) -> List[str]:
        ...

    @property
    @abstractmethod
    def messages(self) -> List[str]:
        """Non-fatal advisories collected while analysing and rendering."""


class PackBase(Pack):
    """Shared state and rendering helpers for the built-in packs.

    Subclasses fill the ``_``-prefixed fields from :meth:`analyze`; the
    Dockerfile and service.yml are rendered from ``<name>.dockerfile.template``
    and ``<name>.service.yml.template`` in the template directory.
    """

    default_language_version: ClassVar[str] = ""
    default_supported_versions: ClassVar[tuple[str, ...]] = ()
    default_ports: ClassVar[tuple[str, ...]] = ()

    def __init__(self, prompt: Prompt | None = None) -> None:
        self._prompt = prompt or input
        self.logger = get_logger(f"packs.{self.name}")
        self._language_version = ""
        self._framework = ""
        self._framework_version = ""
        self._supported_versions: List[str] = list(self.default_supported_versions)
        self._databases: List[str] = []
        self._start_commands: List[str] = []
        self._build_commands: List[str] = []
        self._deploy_commands: List[str] = []
        self._messages: List[str] = []
        self._environment = "production"
        self._git_repo = ""
        self._git_branch = ""

    # ------------------------------------------------------------------
    # Reported values

    @property
    def language_version(self) -> str:
        return self._language_version

    @property
    def framework(self) -> str:
        return self._framework

    @property
    def framework_version(self) -> str:
        return self._framework_version

    @property
    def supported_language_versions(self) -> List[str]:
        return list(self._supported_versions)

    def set_supported_language_versions(self, versions: List[str]) -> None:
        self._supported_versions = list(versions)

    @property
    def databases(self) -> List[str]:
        return list(self._databases)

    @property
    def start_commands(self) -> List[str]:
        return list(self._start_commands)

    @property
    def build_commands(self) -> List[str]:
        return list(self._build_commands)

    @property
    def deploy_commands(self) -> List[str]:
        return list(self._deploy_commands)

    @property
    def messages(self) -> List[str]:
        return list(self._messages)

    def add_message(self, message: str) -> None:
        self.logger.warning(message)
        self._messages.append(message)

    # ------------------------------------------------------------------
    # Analysis helpers

    def analyze(
        self,
        project_path: Path,
        environment: str,
        interactive: bool,
        git_repo: str = "",
        git_branch: str = "",
    ) -> None:
        self._environment = environment
        self._git_repo = git_repo
        self._git_branch = git_branch
        self._analyze(Path(project_path))
        self._resolve_language_version()
        if not self._start_commands:
            self._ask_start_command(interactive)

    @abstractmethod
    def _analyze(self, project_path: Path) -> None:
        ...

    def _resolve_language_version(self) -> None:
        if not self._language_version:
            self._language_version = self.default_language_version
            self.logger.info("No %s version specified; defaulting to %s", self.name, self._language_version)
        if self._supported_versions and not any(
            _same_release(self._language_version, version) for version in self._supported_versions
        ):
            self.add_message(
                f"{self.name} {self._language_version} is not in the supported versions "
                f"({', '.join(self._supported_versions)})"
            )

    def _ask_start_command(self, interactive: bool) -> None:
        if not interactive:
            self.add_message("No start command detected; add one to the generated files")
            return
        try:
            answer = self._prompt("Enter the command to start your application: ").strip()
        except (EOFError, KeyboardInterrupt):
            answer = ""
        if answer:
            self._start_commands.append(answer)
        else:
            self.add_message("No start command detected; add one to the generated files")

    # ------------------------------------------------------------------
    # Rendering

    def template_context(self, project_path: Path) -> Dict[str, Any]:
        return {
            "name": _service_name(project_path),
            "language": self.name,
            "language_version": self._language_version,
            "framework": self._framework,
            "framework_version": self._framework_version,
            "databases": list(self._databases),
            "start_command": self._start_commands[0] if self._start_commands else "",
            "start_commands": list(self._start_commands),
            "build_command": " && ".join(self._build_commands),
            "build_commands": list(self._build_commands),
            "deploy_command": " && ".join(self._deploy_commands),
            "deploy_commands": list(self._deploy_commands),
            "environment": self._environment,
            "git_repo": self._git_repo,
            "git_branch": self._git_branch or "master",
            "ports": list(self.default_ports),
        }

    def render_template(self, template_dir: Path, template_name: str, context: Mapping[str, Any]) -> str:
        env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        try:
            template = env.get_template(template_name)
        except TemplateNotFound as exc:
            raise PackError(f"Template {template_name} not found in {template_dir}") from exc
        try:
            return template.render(**context)
        except TemplateError as exc:
            raise PackError(f"Failed to render {template_name}: {exc}") from exc

    def write_dockerfile(self, template_dir: Path, project_path: Path, interactive: bool) -> None:
        content = self.render_template(
            template_dir, f"{self.name}.dockerfile.template", self.template_context(project_path)
        )
        _write_artifact(ArtifactKind.CONTAINER_BUILD_FILE.destination(project_path), content)

    def write_service_yaml(self, template_dir: Path, project_path: Path, interactive: bool) -> None:
        content = self.render_template(
            template_dir, f"{self.name}.service.yml.template", self.template_context(project_path)
        )
        _write_artifact(ArtifactKind.SERVICE_DESCRIPTOR.destination(project_path), content)

    def write_kubes_config(self, project_path: Path, interactive: bool) -> None:
        raise PackError(f"The {self.name} pack cannot generate Kubernetes configuration")

    def create_bundle(self, project_path: Path, template_dir: Path, branch: str) -> None:
        project_path = Path(project_path)
        members: Dict[str, bytes] = {}
        for kind in (ArtifactKind.CONTAINER_BUILD_FILE, ArtifactKind.SERVICE_DESCRIPTOR):
            source = kind.destination(project_path)
            if source.is_file():
                members[kind.filename] = source.read_bytes()

        stencils_dir = Path(template_dir) / "bundle"
        stencils: List[str] = []
        if stencils_dir.is_dir():
            for stencil in sorted(stencils_dir.rglob("*")):
                if stencil.is_file():
                    relative = stencil.relative_to(stencils_dir).as_posix()
                    members[f"stencils/{relative}"] = stencil.read_bytes()
                    stencils.append(relative)
        else:
            self.add_message(f"No bundle stencils found in {template_dir}; bundle contains generated files only")

        manifest = {
            "version": "1",
            "metadata": {
                "app": _service_name(project_path),
                "pack": self.name,
                "branch": branch,
                "created_at": int(time.time()),
            },
            "files": sorted(name for name in members if not name.startswith("stencils/")),
            "stencils": stencils,
        }
        members["manifest.json"] = json.dumps(manifest, indent=2, sort_keys=True).encode("utf-8")

        bundle_path = ArtifactKind.DEPLOYMENT_BUNDLE.destination(project_path)
        with tarfile.open(bundle_path, "w:gz") as archive:
            for name, payload in sorted(members.items()):
                info = tarfile.TarInfo(name=name)
                info.size = len(payload)
                info.mtime = int(time.time())
                archive.addfile(info, io.BytesIO(payload))
        self.logger.info("Starter bundle written to %s", bundle_path)


def _same_release(detected: str, supported: str) -> bool:
    return (
        detected == supported
        or supported.startswith(f"{detected}.")
        or detected.startswith(f"{supported}.")
    )


def _service_name(project_path: Path) -> str:
    name = Path(project_path).resolve().name.lower()
    cleaned = "".join(char if char.isalnum() else "-" for char in name).strip("-")
    return cleaned or "app"


def _write_artifact(path: Path, content: str) -> None:
    path.write_text(content, encoding="utf-8")
    get_logger("packs").info("%s written to %s", path.name, path)


def read_text(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8")
    except (FileNotFoundError, IsADirectoryError, UnicodeDecodeError):
        return None


__all__ = ["Pack", "PackBase", "Prompt", "read_text"]
